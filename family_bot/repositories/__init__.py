"""Репозитории: весь доступ к таблицам — только отсюда."""
