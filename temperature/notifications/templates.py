"""
Message templates for update notifications.
Uses MarkdownV2 format for Telegram.
"""

import re
from datetime import date
from typing import Iterable, Sequence, Union

from ..database.models import TemperatureRecord
from ..weather.models import TemperatureSample


class MessageTemplates:
    """
    Message template formatter for Telegram notifications.

    All templates use MarkdownV2 format which requires escaping special characters.
    """

    # Characters that need to be escaped in MarkdownV2
    ESCAPE_CHARS = r'_*[]()~`>#+-=|{}.!'

    @classmethod
    def escape_markdown(cls, text: str) -> str:
        """
        Escape special characters for MarkdownV2.

        Args:
            text: Raw text to escape

        Returns:
            Escaped text safe for MarkdownV2
        """
        if not text:
            return ""
        return re.sub(r'([_*\[\]()~`>#+=|{}.!-])', r'\\\1', str(text))

    @classmethod
    def format_temperature_line(cls, description: str, value: float) -> str:
        return cls.escape_markdown(f"{description} - {value:0.1f}C;")

    @classmethod
    def format_success_message(cls, samples: Iterable[TemperatureSample], day: date) -> str:
        """
        Format the "update succeeded" notification.

        Args:
            samples: Samples of the successful batch
            day: Day the samples belong to

        Returns:
            Formatted MarkdownV2 message
        """
        lines = [
            cls.format_temperature_line(sample.location.description, sample.value)
            for sample in sorted(samples, key=lambda s: s.location.description)
        ]
        header = f"✅ *Обновление прошло успешно\\!* \\({cls.escape_markdown(day.strftime('%d.%m.%Y'))}\\)"
        return "\n".join([header, ""] + lines)

    @classmethod
    def format_failure_message(cls, error: Union[str, Exception]) -> str:
        """Format the "update failed" notification."""
        return (
            "❌ *Обновление прошло неудачно*\n\n"
            f"_{cls.escape_markdown(str(error))}_"
        )

    @classmethod
    def format_records_message(cls, records: Sequence[TemperatureRecord]) -> str:
        """Format stored records of one day for the /last command."""
        if not records:
            return "📭 Нет сохранённых данных\\."

        day = records[0].record_date.strftime("%d.%m.%Y")
        lines = [
            cls.format_temperature_line(record.department, record.temperature)
            for record in records
        ]
        return "\n".join([f"🌡 *Температура за {cls.escape_markdown(day)}*", ""] + lines)

    @classmethod
    def format_subscribed_message(cls, username: str) -> str:
        return f"{cls.escape_markdown(username)}, вы подписались на обновления\\!"

    @classmethod
    def format_unsubscribed_message(cls) -> str:
        return "Вы больше не будете получать сообщения\\."

    @classmethod
    def format_error_message(cls, error: Union[str, Exception]) -> str:
        return f"Не удалось выполнить операцию \\- {cls.escape_markdown(str(error))}"

    @classmethod
    def format_welcome_message(cls, name: str) -> str:
        return (
            f"👋 Привет, {cls.escape_markdown(name)}\\!\n\n"
            "Я каждый день собираю среднюю температуру за прошедшие сутки "
            "по всем филиалам\\.\n\n"
            "Используйте /subscribe, чтобы получать обновления, "
            "и /help для списка команд\\."
        )

    @classmethod
    def format_help_message(cls) -> str:
        return (
            "*Команды:*\n\n"
            "/subscribe \\- подписаться на обновления\n"
            "/unsubscribe \\- отписаться от обновлений\n"
            "/last \\- последние сохранённые значения\n"
            "/update \\- запустить обновление вручную \\(администраторы\\)\n"
            "/help \\- эта справка"
        )
