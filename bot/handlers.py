"""All Telegram command and message handlers."""
import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from time import monotonic

from telegram import Update
from telegram.constants import ChatAction, ParseMode
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from config import settings
from store import SettingsStore
from bot.auth import auth
from bot import formatter
from bot.file_parser import parse_note
from agent.llm.factory import get_llm_client
from agent.modules.format import exceeds_x_limit, X_POST_LIMIT
from agent.modules.remix import AISettings, RemixResult, remix
from agent.modules.route import format_content
from agent.platforms import platform_name

logger = logging.getLogger(__name__)

_RATE_LIMIT_WINDOW_SECONDS = settings.rate_limit_window_seconds
_RATE_LIMIT_AI_PER_WINDOW = settings.rate_limit_ai_per_window

_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

_GENERIC_FILE_ERR = "❌ File parsing failed. Please try again later."
_EMPTY_DRAFT_MSG = "✍️ Nothing to remix yet. Send some text or upload a note (.md / .txt) first."
_DELIVERY_FAILED_MSG = "❌ Distribution failed, please retry."

_rate_limit_buckets: dict[tuple[int, str], deque[float]] = {}


@asynccontextmanager
async def _typing(context: ContextTypes.DEFAULT_TYPE, chat_id: int):
    """Sends TYPING chat action repeatedly until the block exits.

    Telegram expires the indicator after ~5 s, so we refresh every 4 s.
    """
    stop = asyncio.Event()

    async def _loop():
        while not stop.is_set():
            try:
                await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
            except TelegramError as e:
                logger.debug("Typing indicator failed: %s", e)
            try:
                await asyncio.wait_for(stop.wait(), timeout=4)
            except asyncio.TimeoutError:
                pass

    task = asyncio.create_task(_loop())
    try:
        yield
    finally:
        stop.set()
        await asyncio.gather(task, return_exceptions=True)

_UNAUTHORIZED_MSG = (
    "You don't have access to this bot.\n\n"
    "Your Telegram ID: `{user_id}`\n\n"
    "Send this ID to the admin to request access.\n"
    "Use /whoami at any time to see your ID."
)


# ── helpers ───────────────────────────────────────────────────────────────────

def _uid(update: Update) -> int:
    return update.effective_user.id


def _cid(update: Update) -> int:
    return update.effective_chat.id


def _is_auth(update: Update) -> bool:
    return auth.is_authorized(_uid(update))


def _check_rate_limit(user_id: int, action: str, limit: int) -> tuple[bool, int]:
    """Return (allowed, retry_after_seconds) for user-action pair."""
    now = monotonic()
    key = (user_id, action)
    bucket = _rate_limit_buckets.setdefault(key, deque())
    window_start = now - _RATE_LIMIT_WINDOW_SECONDS

    while bucket and bucket[0] <= window_start:
        bucket.popleft()

    if len(bucket) >= limit:
        retry_after = int(_RATE_LIMIT_WINDOW_SECONDS - (now - bucket[0])) + 1
        return False, max(retry_after, 1)

    bucket.append(now)
    return True, 0


async def _deny_rate_limit(update: Update, retry_after_seconds: int) -> None:
    await update.message.reply_text(
        f"⏳ Too many AI requests. Please retry in about {retry_after_seconds}s."
    )


async def _deny(update: Update) -> None:
    uid = _uid(update)
    await update.message.reply_text(
        _UNAUTHORIZED_MSG.format(user_id=uid),
        parse_mode=ParseMode.MARKDOWN,
    )


def _store(context: ContextTypes.DEFAULT_TYPE) -> SettingsStore:
    return context.bot_data["store"]


def _current_platform(context: ContextTypes.DEFAULT_TYPE) -> str:
    """Chat's selected platform if still enabled, else the default, else the first enabled."""
    remix_settings = _store(context).settings
    enabled = [p.id for p in remix_settings.enabled_platforms()]
    selected = context.user_data.get("platform")
    if selected in enabled:
        return selected
    if remix_settings.default_platform in enabled or not enabled:
        return remix_settings.default_platform
    return enabled[0]


def _draft(context: ContextTypes.DEFAULT_TYPE) -> str:
    return context.user_data.get("draft", "")


def _set_preview(context: ContextTypes.DEFAULT_TYPE, platform_id: str, text: str, source: str) -> None:
    context.user_data["preview"] = {"platform": platform_id, "text": text, "source": source}


def _rules_preview(context: ContextTypes.DEFAULT_TYPE) -> tuple[str, str]:
    """(platform_id, text) rule-based preview of the draft; stores it as current."""
    platform_id = _current_platform(context)
    text = format_content(_draft(context), platform_id)
    _set_preview(context, platform_id, text, "rules")
    return platform_id, text


def _current_preview_text(context: ContextTypes.DEFAULT_TYPE) -> str:
    platform_id = _current_platform(context)
    preview = context.user_data.get("preview")
    if preview and preview.get("platform") == platform_id:
        return preview["text"]
    return _rules_preview(context)[1]


async def _send_preview(update: Update, platform_id: str, text: str, source: str) -> None:
    for msg in formatter.format_preview(platform_id, text, source):
        await update.message.reply_text(msg, parse_mode=ParseMode.MARKDOWN_V2)


async def _warn_if_too_long(update: Update, platform_id: str, text: str) -> None:
    if platform_id == "x" and exceeds_x_limit(text):
        await update.message.reply_text(
            f"⚠️ {len(text)} characters: over X's {X_POST_LIMIT}-character limit. "
            "Trim it before posting."
        )


async def _run_remix(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    content: str,
    platform_id: str,
    ai: AISettings,
) -> RemixResult:
    llm = get_llm_client(ai, context.bot_data.get("http"))
    async with _typing(context, _cid(update)):
        return await remix(content, platform_id, ai, llm)


async def _deliver(update: Update, text: str) -> bool:
    """Send ``text`` as plain, copy-ready message(s). Returns False if Telegram refused."""
    try:
        for chunk in formatter.split_plain(text):
            await update.message.reply_text(chunk)
    except TelegramError as e:
        logger.warning("Delivery failed: %s", e)
        await update.message.reply_text(_DELIVERY_FAILED_MSG)
        return False
    return True


def _parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in ("on", "true", "yes", "1"):
        return True
    if v in ("off", "false", "no", "0"):
        return False
    raise ValueError(f"expected on/off, got {value!r}")


# ── /start ────────────────────────────────────────────────────────────────────

async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        "👋 Welcome to *Content Remix*\n\n"
        "Send a note and get it restyled for Xiaohongshu, Jike, X or WeChat\\.\n\n"
        "Send /help to see all available commands\\.",
        parse_mode=ParseMode.MARKDOWN_V2,
    )


# ── /help ─────────────────────────────────────────────────────────────────────

async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    text = (
        "📖 *Commands*\n\n"
        "*Content*\n"
        "Send text or upload a \\.md / \\.txt note to set the draft\n"
        "/preview \\- Rule\\-based preview of the draft\n"
        "/ai \\- Rewrite the draft with AI \\(falls back to rules\\)\n"
        "/copy \\- Send the current preview as a copy\\-ready message\n"
        "/distribute \\- Format for the selected platform and send it\n\n"
        "*Platforms*\n"
        "/platforms \\- List enabled platforms\n"
        "/platform \\<id\\> \\- Select a platform for this chat\n\n"
        "*Settings* \\(admins\\)\n"
        "/settings \\- Show settings\n"
        "/set \\<ai\\|key\\|model\\|endpoint\\|autoformat\\|default\\> \\<value\\>\n"
        "/toggle \\<id\\> \\- Enable or disable a platform\n\n"
        "*Other*\n"
        "/status \\- Show bot status\n"
        "/whoami \\- Show your Telegram ID"
    )
    await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


# ── /status ───────────────────────────────────────────────────────────────────

async def cmd_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    remix_settings = _store(context).settings
    ai = remix_settings.ai_snapshot()
    if ai.enabled and ai.api_key:
        ai_state = f"on / `{formatter.escape(ai.model)}`"
    elif ai.enabled:
        ai_state = "on, but no API key \\(rule\\-based only\\)"
    else:
        ai_state = "off"

    uid = _uid(update)
    auth_icon = "✅ Authorized" if auth.is_authorized(uid) else "❌ Unauthorized"
    current = _current_platform(context)

    text = (
        "⚙️ *Bot Status*\n\n"
        f"🤖 AI: {ai_state}\n"
        f"📌 Platform: `{formatter.escape(current)}` \\({formatter.escape(platform_name(current))}\\)\n"
        f"📝 Draft: `{len(_draft(context))}` chars\n"
        f"👤 Access: {auth_icon}"
    )
    await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


# ── /whoami ───────────────────────────────────────────────────────────────────

async def cmd_whoami(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    uid = _uid(update)
    if auth.is_admin(uid):
        status = "✅ Authorized (admin)"
    elif auth.is_authorized(uid):
        status = "✅ Authorized"
    else:
        status = "❌ Unauthorized"
    text = (
        f"Your Telegram ID: `{uid}`\n"
        f"Status: {status}\n\n"
        "Share this ID with the admin to request access."
    )
    await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN)


# ── draft input ───────────────────────────────────────────────────────────────

async def _accept_draft(update: Update, context: ContextTypes.DEFAULT_TYPE, content: str) -> None:
    context.user_data["draft"] = content
    context.user_data.pop("preview", None)
    if _store(context).settings.auto_format:
        platform_id, text = _rules_preview(context)
        await _send_preview(update, platform_id, text, "rules")
    else:
        await update.message.reply_text(
            f"📝 Draft saved ({len(content)} chars). Use /preview, /ai or /distribute."
        )


async def handle_plain_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Plain text replaces the draft. Unauthorized users receive a whoami hint."""
    if not update.message or not update.message.text:
        return

    if not _is_auth(update):
        await _deny(update)
        return

    content = update.message.text
    if not content.strip():
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return
    await _accept_draft(update, context, content)


async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """An uploaded note replaces the draft."""
    if not _is_auth(update):
        await _deny(update)
        return

    document = update.message.document
    filename = document.file_name or "note.md"
    if (document.file_size or 0) > _MAX_UPLOAD_BYTES:
        await update.message.reply_text("❌ File exceeds the 5 MB limit.")
        return

    try:
        tg_file = await document.get_file()
        data = await tg_file.download_as_bytearray()
        content = parse_note(bytes(data), filename)
    except ValueError as e:
        await update.message.reply_text(f"❌ {e}")
        return
    except TelegramError:
        logger.exception("File download error")
        await update.message.reply_text(_GENERIC_FILE_ERR)
        return

    if not content.strip():
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return
    await _accept_draft(update, context, content)


# ── /platforms, /platform <id> ────────────────────────────────────────────────

async def cmd_platforms(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_auth(update):
        await _deny(update)
        return

    remix_settings = _store(context).settings
    text = formatter.format_platform_list(
        remix_settings.enabled_platforms(),
        remix_settings.default_platform,
        _current_platform(context),
    )
    await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


async def cmd_platform(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_auth(update):
        await _deny(update)
        return

    if not context.args:
        await cmd_platforms(update, context)
        return

    platform_id = context.args[0].strip().lower()
    enabled = [p.id for p in _store(context).enabled_platforms()]
    if platform_id not in enabled:
        await update.message.reply_text(
            f"❌ Platform '{platform_id}' is unknown or disabled. Enabled: {', '.join(enabled) or '(none)'}"
        )
        return

    context.user_data["platform"] = platform_id
    context.user_data.pop("preview", None)
    if not _draft(context):
        await update.message.reply_text(f"📌 Platform set to {platform_name(platform_id)}.")
        return
    _, text = _rules_preview(context)
    await _send_preview(update, platform_id, text, "rules")


# ── /preview ──────────────────────────────────────────────────────────────────

async def cmd_preview(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Rule-based only; the AI path is never called for previews."""
    if not _is_auth(update):
        await _deny(update)
        return

    if not _draft(context):
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return
    platform_id, text = _rules_preview(context)
    await _send_preview(update, platform_id, text, "rules")


# ── /ai ───────────────────────────────────────────────────────────────────────

async def cmd_ai(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_auth(update):
        await _deny(update)
        return

    content = _draft(context)
    if not content.strip():
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return

    ai = _store(context).ai_snapshot()
    if ai.enabled and ai.api_key:
        allowed, retry_after = _check_rate_limit(_uid(update), "ai", _RATE_LIMIT_AI_PER_WINDOW)
        if not allowed:
            await _deny_rate_limit(update, retry_after)
            return

    platform_id = _current_platform(context)
    status_msg = await update.message.reply_text("🤖 Generating…")
    result = await _run_remix(update, context, content, platform_id, ai)
    try:
        await status_msg.delete()
    except TelegramError as e:
        logger.debug("Could not delete status message: %s", e)

    _set_preview(context, platform_id, result.text, result.source)
    await _send_preview(update, platform_id, result.text, result.source)

    if result.source == "ai":
        await update.message.reply_text("✅ AI content generated. /copy sends it as a copy-ready message.")
    elif not ai.enabled or not ai.api_key:
        await update.message.reply_text(
            "ℹ️ AI is not configured, showing the rule-based version. "
            "An admin can use /set ai on and /set key <key>."
        )
    else:
        await update.message.reply_text("⚠️ AI generation failed, showing the rule-based version instead.")
    await _warn_if_too_long(update, platform_id, result.text)


# ── /copy ─────────────────────────────────────────────────────────────────────

async def cmd_copy(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_auth(update):
        await _deny(update)
        return

    if not _draft(context):
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return

    text = _current_preview_text(context)
    if await _deliver(update, text):
        await update.message.reply_text("📋 Ready to copy: long-press the message above.")


# ── /distribute ───────────────────────────────────────────────────────────────

async def cmd_distribute(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_auth(update):
        await _deny(update)
        return

    content = _draft(context)
    if not content.strip():
        await update.message.reply_text(_EMPTY_DRAFT_MSG)
        return

    platform_id = _current_platform(context)
    ai = _store(context).ai_snapshot()
    if ai.enabled:
        if ai.api_key:
            allowed, retry_after = _check_rate_limit(_uid(update), "ai", _RATE_LIMIT_AI_PER_WINDOW)
            if not allowed:
                await _deny_rate_limit(update, retry_after)
                return
        result = await _run_remix(update, context, content, platform_id, ai)
        text, source = result.text, result.source
    else:
        text, source = format_content(content, platform_id), "rules"

    _set_preview(context, platform_id, text, source)
    if not await _deliver(update, text):
        return
    await update.message.reply_text(
        f"✅ Formatted for {platform_name(platform_id)} and sent above, ready to copy."
    )
    await _warn_if_too_long(update, platform_id, text)


# ── settings (admins) ─────────────────────────────────────────────────────────

async def _require_admin(update: Update) -> bool:
    if not _is_auth(update):
        await _deny(update)
        return False
    if not auth.is_admin(_uid(update)):
        await update.message.reply_text("❌ Only admins can change settings.")
        return False
    return True


async def cmd_settings(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _require_admin(update):
        return

    text = formatter.format_settings(_store(context).settings)
    await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)


_SET_USAGE = (
    "Usage: /set <key> <value>\n"
    "  ai on|off\n"
    "  autoformat on|off\n"
    "  key <api key>\n"
    "  model <model name>\n"
    "  endpoint <url>\n"
    "  default <platform id>"
)


async def cmd_set(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _require_admin(update):
        return

    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text(_SET_USAGE)
        return

    key, value = args[0].lower(), " ".join(args[1:]).strip()
    store = _store(context)
    try:
        if key == "ai":
            store.set_ai_enabled(_parse_bool(value))
        elif key == "autoformat":
            store.set_auto_format(_parse_bool(value))
        elif key == "key":
            store.set_ai_api_key(value)
        elif key == "model":
            store.set_ai_model(value)
        elif key == "endpoint":
            store.set_ai_endpoint(value)
        elif key == "default":
            store.set_default_platform(value.lower())
        else:
            await update.message.reply_text(_SET_USAGE)
            return
    except ValueError as e:
        await update.message.reply_text(f"❌ {e}")
        return
    except KeyError:
        await update.message.reply_text(f"❌ Unknown platform '{value}'.")
        return

    shown = formatter.mask_secret(value) if key == "key" else value
    await update.message.reply_text(f"✅ {key} = {shown}")
    if key == "key":
        await _forget_message(update)


async def _forget_message(update: Update) -> None:
    """Delete a message that carried a secret; not all chats allow it."""
    try:
        await update.message.delete()
    except TelegramError as e:
        logger.info("Could not delete message holding the API key: %s", e)


async def cmd_toggle(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _require_admin(update):
        return

    if not context.args:
        await update.message.reply_text("Usage: /toggle <platform id>")
        return

    platform_id = context.args[0].strip().lower()
    store = _store(context)
    try:
        enabled = not store.settings.get_platform(platform_id).enabled
        store.set_platform_enabled(platform_id, enabled)
    except KeyError:
        await update.message.reply_text(f"❌ Unknown platform '{platform_id}'.")
        return

    state = "enabled" if enabled else "disabled"
    await update.message.reply_text(f"✅ {platform_name(platform_id)} {state}.")
