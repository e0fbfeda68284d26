from datetime import date

import pytest

from family_bot.models import DataReply, TextReply
from family_bot.services.classifier import (
    APOLOGY,
    CLARIFY,
    NOT_CONFIGURED,
    LlmClassifier,
    build_system_prompt,
    parse_reply,
)
from family_bot.services.llm import LlmNotConfiguredError
from tests.conftest import FakeChatClient


def test_plain_text_is_text_reply():
    assert parse_reply("Привет! Чем помочь?") == TextReply("Привет! Чем помочь?")


def test_json_object_is_data_reply():
    result = parse_reply('{"type": "Transaction", "amount": "-500", "project": "Cars"}')
    assert isinstance(result, DataReply)
    assert result.data["type"] == "transaction"
    assert result.data["amount"] == "-500"


def test_fenced_json_is_data_reply():
    raw = '```json\n{"type": "idea", "description": "баня"}\n```'
    result = parse_reply(raw)
    assert isinstance(result, DataReply)
    assert result.data["description"] == "баня"


def test_broken_json_falls_back_to_text():
    raw = '{"type": "task", "description": '
    assert parse_reply(raw + "}") == TextReply(raw + "}")


def test_json_array_is_text():
    assert isinstance(parse_reply("[1, 2]"), TextReply)


def test_json_without_known_type_asks_to_clarify():
    assert parse_reply('{"type": "note", "description": "x"}') == TextReply(CLARIFY)
    assert parse_reply('{"description": "x"}') == TextReply(CLARIFY)


def test_empty_reply_is_apology():
    assert parse_reply("") == TextReply(APOLOGY)


def test_prompt_lists_projects_and_persons():
    prompt = build_system_prompt(["GO", "Cars"], ["Саша"])
    assert "GO, Cars" in prompt
    assert "Саша" in prompt


@pytest.mark.asyncio
async def test_classify_sends_date_and_chat_id():
    client = FakeChatClient('{"type": "task", "description": "купить корм"}')
    classifier = LlmClassifier(client, projects=["Family"])

    result = await classifier.classify("купить корм", "42", today=date(2026, 10, 19), persons=["Ира"])

    assert isinstance(result, DataReply)
    user_turn = client.calls[0][1]["content"]
    assert "2026-10-19" in user_turn
    assert "42" in user_turn
    assert "Ира" in client.calls[0][0]["content"]


@pytest.mark.asyncio
async def test_classify_never_raises():
    classifier = LlmClassifier(FakeChatClient(error=RuntimeError("timeout")))
    assert await classifier.classify("hi", "1", today=date.today()) == TextReply(APOLOGY)


@pytest.mark.asyncio
async def test_classify_not_configured():
    classifier = LlmClassifier(FakeChatClient(error=LlmNotConfiguredError("no key")))
    assert await classifier.classify("hi", "1", today=date.today()) == TextReply(NOT_CONFIGURED)
