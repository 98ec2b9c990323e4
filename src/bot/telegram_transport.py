# src/bot/telegram_transport.py

"""python-telegram-bot adapter: inbound updates in, messages out."""

import logging
from collections.abc import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.bot.command_router import CommandRouter
from src.bot.transport import MenuOptions

logger = logging.getLogger("price_watch.telegram")

COMMANDS: tuple[str, ...] = ("start", "add", "list", "remove", "clear", "help")


def command_name(text: str) -> str:
    """``'/add@PriceBot https://...'`` -> ``'add'``."""
    head = text.split(maxsplit=1)[0] if text.strip() else ""
    return head.lstrip("/").split("@", 1)[0].lower()


class TelegramTransport:
    """Telegram implementation of the chat transport.

    The bot token is the only Telegram-specific input; the scheduler is
    started from ``post_init`` so firings share the bot's event loop.
    """

    def __init__(self, token: str) -> None:
        self.application = (
            Application.builder()
            .token(token)
            .concurrent_updates(True)
            .post_init(self._on_startup)
            .post_shutdown(self._on_shutdown)
            .build()
        )
        self._router: CommandRouter | None = None
        self._scheduler: AsyncIOScheduler | None = None
        self._scheduler_factory: Callable[[], AsyncIOScheduler] | None = None
        self._cleanup: Callable[[], Awaitable[None]] | None = None

    # ── Outbound ─────────────────────────────────────────

    async def send(
        self, owner: int, text: str, formatting: str | None = None,
    ) -> None:
        await self.application.bot.send_message(
            chat_id=owner, text=text, parse_mode=formatting,
        )

    async def send_menu(
        self,
        owner: int,
        text: str,
        options: MenuOptions,
        formatting: str | None = None,
    ) -> None:
        keyboard = InlineKeyboardMarkup([
            [InlineKeyboardButton(label, callback_data=key)]
            for label, key in options
        ])
        await self.application.bot.send_message(
            chat_id=owner,
            text=text,
            parse_mode=formatting,
            reply_markup=keyboard,
        )

    # ── Inbound ──────────────────────────────────────────

    def attach(self, router: CommandRouter) -> None:
        """Route every supported update type to *router*."""
        self._router = router
        for name in COMMANDS:
            self.application.add_handler(
                CommandHandler(name, self._on_command)
            )
        self.application.add_handler(CallbackQueryHandler(self._on_menu))
        self.application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text)
        )
        self.application.add_error_handler(self._on_error)

    def _require_router(self) -> CommandRouter:
        if self._router is None:
            raise RuntimeError("TelegramTransport used before attach()")
        return self._router

    async def _on_command(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None or not message.text:
            return
        await self._require_router().handle_command(
            chat.id, command_name(message.text), list(context.args or []),
        )

    async def _on_menu(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        query = update.callback_query
        chat = update.effective_chat
        if query is None or chat is None:
            return
        await query.answer()
        await self._require_router().handle_menu_selection(
            chat.id, query.data or "",
        )

    async def _on_text(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None or message.text is None:
            return
        await self._require_router().handle_text(chat.id, message.text)

    async def _on_error(
        self, update: object, context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        logger.error(
            "Error while handling update %s", update, exc_info=context.error,
        )

    # ── Lifecycle ────────────────────────────────────────

    async def _on_startup(self, application: Application) -> None:
        if self._scheduler_factory is not None:
            self._scheduler = self._scheduler_factory()
        if self._scheduler is not None:
            self._scheduler.start()
            logger.info("Scheduler started")

    async def _on_shutdown(self, application: Application) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        if self._cleanup is not None:
            await self._cleanup()

    def run(
        self,
        scheduler_factory: Callable[[], AsyncIOScheduler] | None = None,
        cleanup: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Block in long polling until interrupted.

        *scheduler_factory* is called once the bot's event loop is
        running, so the scheduler binds to that loop.
        """
        self._scheduler_factory = scheduler_factory
        self._cleanup = cleanup
        logger.info("Telegram bot polling started")
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)
