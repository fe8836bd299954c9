"""Content Remix - Telegram Bot entry point."""
import logging
import sys
from urllib.parse import urlparse

import httpx
from telegram import BotCommand
from telegram.ext import (
    Application,
    CommandHandler,
    MessageHandler,
    filters,
)

from config import settings
from store import SettingsStore
from bot.handlers import (
    cmd_start,
    cmd_help,
    cmd_status,
    cmd_whoami,
    cmd_platforms,
    cmd_platform,
    cmd_preview,
    cmd_ai,
    cmd_copy,
    cmd_distribute,
    cmd_settings,
    cmd_set,
    cmd_toggle,
    handle_plain_message,
    handle_document,
)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    stream=sys.stdout,
)
# httpx logs every request URL at INFO.
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def _post_init(app: Application) -> None:
    app.bot_data["http"] = httpx.AsyncClient(timeout=settings.ai_timeout_seconds)
    await app.bot.set_my_commands([
        BotCommand("preview",    "Rule-based preview of the draft"),
        BotCommand("ai",         "Rewrite the draft with AI"),
        BotCommand("copy",       "Send the preview as a copy-ready message"),
        BotCommand("distribute", "Format for the selected platform and send"),
        BotCommand("platforms",  "List enabled platforms"),
        BotCommand("platform",   "Select a platform"),
        BotCommand("settings",   "Show settings (admins)"),
        BotCommand("status",     "Show bot status"),
        BotCommand("help",       "Show all commands"),
        BotCommand("whoami",     "Show your Telegram ID"),
    ])


async def _post_shutdown(app: Application) -> None:
    http = app.bot_data.pop("http", None)
    if http is not None:
        await http.aclose()


def main() -> None:
    store = SettingsStore()
    logger.info("Settings loaded from %s.", store.path)

    app = (
        Application.builder()
        .token(settings.telegram_bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    app.bot_data["store"] = store

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("status", cmd_status))
    app.add_handler(CommandHandler("whoami", cmd_whoami))
    app.add_handler(CommandHandler("platforms", cmd_platforms))
    app.add_handler(CommandHandler("platform", cmd_platform))
    app.add_handler(CommandHandler("preview", cmd_preview))
    app.add_handler(CommandHandler("ai", cmd_ai))
    app.add_handler(CommandHandler("copy", cmd_copy))
    app.add_handler(CommandHandler("distribute", cmd_distribute))
    app.add_handler(CommandHandler("settings", cmd_settings))
    app.add_handler(CommandHandler("set", cmd_set))
    app.add_handler(CommandHandler("toggle", cmd_toggle))

    # Plain text and uploaded notes become the draft
    app.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_plain_message)
    )
    app.add_handler(MessageHandler(filters.Document.ALL, handle_document))

    if settings.webhook_url:
        url_path = urlparse(settings.webhook_url).path or "/bot"
        logger.info("Webhook mode: %s (listening on port %d)", settings.webhook_url, settings.webhook_port)
        app.run_webhook(
            listen=settings.webhook_listen,
            port=settings.webhook_port,
            url_path=url_path,
            secret_token=settings.webhook_secret or None,
            webhook_url=settings.webhook_url,
            drop_pending_updates=True,
        )
    else:
        logger.info("Polling mode (set WEBHOOK_URL in .env to switch to webhook).")
        app.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
