"""
Rule-based platform formatting.

Every function here is pure and total: any string in, a string out, no
network and no settings. These are the local fallback for AI rewriting and
the source of the live preview.
"""
import re

_HEADING_RE = re.compile(r"^(?:#+[ \t]*)+", flags=re.MULTILINE)

ELLIPSIS = "..."

# xiaohongshu
XHS_INTRO = "✨ 实用工具分享｜内容分发助手插件体验"
XHS_HASHTAGS = "#Obsidian插件 #内容分发 #效率工具 #小红书创作"
XHS_SPARKLE = "✨ "
_XHS_HIGHLIGHT_MIN_LEN = 50  # paragraphs longer than this get a sparkle

# jike
JIKE_INTRO = "🚀 发现一个超实用的Obsidian插件！"
JIKE_HASHTAGS = "#Obsidian #内容分发"
JIKE_MAX_LINES = 5
JIKE_MAX_CHARS = 200

# x
X_INTRO = "💡 New Obsidian plugin for content distribution!"
X_HASHTAGS = "#Obsidian #ContentDistribution #Productivity"
X_MAX_CONTENT_CHARS = 240
# The wrapped post is not capped to this; see exceeds_x_limit().
X_POST_LIMIT = 280

# wechat
WECHAT_DEFAULT_HEADING = "# Obsidian内容分发助手插件介绍"
WECHAT_SUMMARY = (
    "## 总结\n\n"
    "这款插件能够帮助你快速将Obsidian笔记转化为适合不同平台的内容，提升内容分发效率。"
)


def strip_headings(content: str) -> str:
    """Remove Markdown heading markers at the start of every line.

    A run like ``## # Title`` is removed entirely. Markers that are not at a
    line start are left alone.
    """
    return _HEADING_RE.sub("", content)


def truncate(text: str, limit: int, keep: int | None = None) -> str:
    """Cut ``text`` to ``keep`` characters plus an ellipsis if it exceeds ``limit``."""
    if len(text) <= limit:
        return text
    return text[: limit if keep is None else keep] + ELLIPSIS


def format_xiaohongshu(content: str) -> str:
    paragraphs = strip_headings(content).split("\n\n")
    body = "\n\n".join(
        f"{XHS_SPARKLE}{para}" if len(para) > _XHS_HIGHLIGHT_MIN_LEN else para
        for para in paragraphs
    )
    return f"{XHS_INTRO}\n\n{body}\n\n{XHS_HASHTAGS}"


def format_jike(content: str) -> str:
    lines = [line for line in strip_headings(content).strip().split("\n") if line.strip()]
    body = "\n".join(lines[:JIKE_MAX_LINES])
    body = truncate(body, JIKE_MAX_CHARS, keep=JIKE_MAX_CHARS - len(ELLIPSIS))
    return f"{JIKE_INTRO}\n\n{body}\n\n{JIKE_HASHTAGS}"


def format_x(content: str) -> str:
    body = truncate(strip_headings(content).strip(), X_MAX_CONTENT_CHARS)
    return f"{X_INTRO} {body}\n\n{X_HASHTAGS}"


def format_wechat(content: str) -> str:
    body = content
    if not body.startswith("#"):
        body = f"{WECHAT_DEFAULT_HEADING}\n\n{body}"
    # A removal can splice the surrounding text into a new copy.
    while WECHAT_SUMMARY in body:
        body = body.replace(f"\n\n{WECHAT_SUMMARY}", "").replace(WECHAT_SUMMARY, "")
    return f"{body}\n\n{WECHAT_SUMMARY}"


def passthrough(content: str) -> str:
    return content


def exceeds_x_limit(text: str) -> bool:
    return len(text) > X_POST_LIMIT
