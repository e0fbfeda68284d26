from __future__ import annotations

from aiogram.types import User

from family_bot.models import UserContext
from family_bot.repositories.users import UsersRepository

APOLOGY = "Извините, произошла ошибка при обработке сообщения."


async def load_user_context(users: UsersRepository, chat_id: int | str, user: User | None) -> UserContext:
    """Профиль и команда пользователя для обработки одного сообщения."""
    return await users.load_context(
        str(chat_id),
        username=user.username if user else None,
        first_name=user.first_name if user else None,
    )
