"""
Telegram bot command handlers.
Handles all bot commands from users.
"""

import logging
from typing import Awaitable, Callable

from telegram import Update
from telegram.ext import ContextTypes
from telegram.constants import ParseMode

from ..config import Config
from ..database import Database, AlreadySubscribedError, NotSubscribedError
from ..notifications import MessageTemplates
from ..weather.models import BatchResult

logger = logging.getLogger(__name__)


class CommandHandlers:
    """
    Handles all Telegram bot commands.

    Anyone may subscribe; a manual /update is limited to
    global admins (ADMIN_USER_IDS).
    """

    def __init__(self, db: Database, run_update: Callable[[], Awaitable[BatchResult]]):
        """
        Initialize command handlers.

        Args:
            db: Database instance
            run_update: Coroutine function running one update batch
        """
        self.db = db
        self.run_update = run_update

    def _is_admin(self, update: Update) -> bool:
        return update.effective_user.id in Config.ADMIN_USER_IDS

    async def _reply(self, update: Update, text: str) -> None:
        await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)

    async def start_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """
        Handle /start command.
        Sends welcome message.
        """
        user = update.effective_user
        await self._reply(
            update,
            MessageTemplates.format_welcome_message(user.first_name or user.username or "коллега")
        )
        logger.info(f"User {user.id} started bot in chat {update.effective_chat.id}")

    async def help_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /help command."""
        await self._reply(update, MessageTemplates.format_help_message())

    async def subscribe_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """
        Handle /subscribe command.
        Registers the chat as a notification receiver.
        """
        chat_id = update.effective_chat.id
        username = update.effective_user.username or update.effective_user.first_name or str(chat_id)
        logger.info(f"Subscribe request: chat={chat_id}, username={username}")

        try:
            await self.db.add_subscriber(chat_id, username)
        except AlreadySubscribedError as e:
            logger.warning(f"Subscribe failed: {e}")
            await self._reply(update, MessageTemplates.format_error_message("Пользователь уже подписан"))
            return

        await self._reply(update, MessageTemplates.format_subscribed_message(username))

    async def unsubscribe_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /unsubscribe command."""
        chat_id = update.effective_chat.id
        logger.info(f"Unsubscribe request: chat={chat_id}")

        try:
            await self.db.remove_subscriber(chat_id)
        except NotSubscribedError as e:
            logger.warning(f"Unsubscribe failed: {e}")
            await self._reply(
                update, MessageTemplates.format_error_message("Пользователь не был ранее подписан")
            )
            return

        await self._reply(update, MessageTemplates.format_unsubscribed_message())

    async def last_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """
        Handle /last command.
        Shows the temperatures of the most recent stored day.
        """
        records = await self.db.get_latest_temperatures()
        await self._reply(update, MessageTemplates.format_records_message(records))

    async def update_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """
        Handle /update command.
        Runs an update batch right away; subscribers get the usual notification.
        """
        if not self._is_admin(update):
            await self._reply(update, "⛔ Эта команда доступна только администраторам\\.")
            return

        await self._reply(update, "🔄 Запускаю обновление\\.\\.\\.")
        try:
            result = await self.run_update()
        except Exception as e:
            logger.error(f"Manual update failed: {e}")
            await self._reply(update, MessageTemplates.format_error_message(e))
            return

        if result.ok:
            await self._reply(update, "✅ Обновление завершено\\.")
        else:
            await self._reply(update, MessageTemplates.format_failure_message(result.error))

    async def unknown_command(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle unknown commands."""
        await self._reply(update, "❓ Неизвестная команда\\. Используйте /help\\.")
