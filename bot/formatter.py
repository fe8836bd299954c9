"""Format previews, platform lists and settings as Telegram MarkdownV2 messages."""
import re

from agent.platforms import PlatformConfig, platform_name

# Characters that must be escaped in MarkdownV2
_ESCAPE_CHARS = r"\_*[]()~`>#+-=|{}.!"

_MAX_INLINE_CHARS = 3800  # leave headroom below 4096

PREVIEW_PLACEHOLDER = "预览将显示格式化后的内容..."

_SOURCE_LABELS = {
    "rules": "rule-based",
    "ai": "AI",
}


def escape(text: str) -> str:
    """Escape special characters for Telegram MarkdownV2."""
    return re.sub(r"([" + re.escape(_ESCAPE_CHARS) + r"])", r"\\\1", text)


def mask_secret(secret: str) -> str:
    if not secret:
        return "(not set)"
    if len(secret) <= 8:
        return "****"
    return f"{secret[:3]}…{secret[-4:]}"


def format_preview(platform_id: str, content: str, source: str = "rules") -> list[str]:
    """Header plus escaped content, split into messages Telegram will accept."""
    label = escape(platform_name(platform_id))
    src = escape(_SOURCE_LABELS.get(source, source))
    separator = escape("─" * 17)
    header = f"👀 *{label}* _\\({src}\\)_\n{separator}\n"
    return _split_message(header + escape(content or PREVIEW_PLACEHOLDER))


def format_platform_list(
    platforms: list[PlatformConfig],
    default_id: str,
    current_id: str | None = None,
) -> str:
    if not platforms:
        return "No platforms are enabled\\. An admin can use /toggle \\<id\\>\\."

    lines = ["📌 *Platforms*", ""]
    for p in platforms:
        marks = []
        if p.id == default_id:
            marks.append("default")
        if p.id == current_id:
            marks.append("selected")
        suffix = f"  _\\({escape(', '.join(marks))}\\)_" if marks else ""
        lines.append(f"`{escape(p.id)}` {escape(p.name)}{suffix}")
    lines.append("")
    lines.append("Use /platform \\<id\\> to switch\\.")
    return "\n".join(lines)


def _on_off(value: bool) -> str:
    return "✅ on" if value else "❌ off"


def format_settings(settings) -> str:
    """Render a RemixSettings object, API key masked."""
    platform_lines = [
        f"  {'✅' if p.enabled else '❌'} `{escape(p.id)}` {escape(p.name)}"
        for p in settings.platforms
    ]
    lines = [
        "⚙️ *Settings*",
        "",
        f"Default platform: `{escape(settings.default_platform)}`",
        f"Auto format: {_on_off(settings.auto_format)}",
        "",
        "*AI*",
        f"Enabled: {_on_off(settings.ai_enabled)}",
        f"API key: `{escape(mask_secret(settings.ai_api_key))}`",
        f"Model: `{escape(settings.ai_model)}`",
        f"Endpoint: `{escape(settings.ai_endpoint)}`",
        "",
        "*Platforms*",
        *platform_lines,
    ]
    return "\n".join(lines)


def _split_message(text: str, max_len: int = _MAX_INLINE_CHARS) -> list[str]:
    if len(text) <= max_len:
        return [text]
    chunks = []
    while text:
        cut = text[:max_len]
        # Never end a chunk on a lone escape backslash.
        if cut.endswith("\\") and not cut.endswith("\\\\"):
            cut = cut[:-1]
        chunks.append(cut)
        text = text[len(cut):]
    return chunks


def split_plain(text: str, max_len: int = 4000) -> list[str]:
    """Split unformatted text for delivery, preferring line breaks."""
    if len(text) <= max_len:
        return [text]
    chunks = []
    while len(text) > max_len:
        cut = text.rfind("\n", 0, max_len)
        if cut <= 0:
            cut = max_len
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks
