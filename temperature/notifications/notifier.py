"""
Notification manager for update results.
Broadcasts messages to every subscribed chat.
"""

import logging
from datetime import date

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from .templates import MessageTemplates
from ..database import Database
from ..weather.models import BatchResult

logger = logging.getLogger(__name__)


class Notifier:
    """
    Sends update notifications to subscribers.

    A failed delivery to one chat is logged and does not stop
    delivery to the others.
    """

    def __init__(self, bot: Bot, db: Database):
        """
        Initialize the notifier.

        Args:
            bot: Telegram bot instance
            db: Database instance holding subscribers
        """
        self.bot = bot
        self.db = db

    async def emit(self, message: str) -> int:
        """
        Send a MarkdownV2 message to all subscribers.

        Args:
            message: Formatted message text

        Returns:
            Number of chats the message was delivered to
        """
        subscribers = await self.db.get_subscribers()
        delivered = 0

        for subscriber in subscribers:
            try:
                await self.bot.send_message(
                    chat_id=subscriber.chat_id,
                    text=message,
                    parse_mode=ParseMode.MARKDOWN_V2
                )
                delivered += 1
            except TelegramError as e:
                logger.error(f"Failed to send notification to chat {subscriber.chat_id}: {e}")

        logger.info(f"Notification delivered to {delivered}/{len(subscribers)} chats")
        return delivered

    async def emit_result(self, result: BatchResult, day: date) -> int:
        """Send the success or failure message for a batch result."""
        if result.ok:
            message = MessageTemplates.format_success_message(result.samples, day)
        else:
            message = MessageTemplates.format_failure_message(result.error)
        return await self.emit(message)
