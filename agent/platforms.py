"""
Static registry of supported publishing platforms.

The registry is leaf data: ids, display labels and the enabled-by-default
flags. Which formatter and prompt template serve an id is decided in
agent/modules/route.py.
"""
from enum import Enum

from pydantic import BaseModel


class Platform(str, Enum):
    XIAOHONGSHU = "xiaohongshu"
    JIKE = "jike"
    X = "x"
    WECHAT = "wechat"
    # Any id not listed above. Formats as identity, prompts with a generic template.
    GENERIC = "generic"


class PlatformConfig(BaseModel):
    id: str
    name: str
    enabled: bool = True


PLATFORM_NAMES: dict[str, str] = {
    "xiaohongshu": "小红书",
    "jike": "即刻",
    "x": "X (Twitter)",
    "wechat": "微信公众号",
}

DEFAULT_PLATFORMS: list[PlatformConfig] = [
    PlatformConfig(id="xiaohongshu", name="小红书", enabled=True),
    PlatformConfig(id="jike", name="即刻", enabled=True),
    PlatformConfig(id="x", name="X (Twitter)", enabled=True),
    PlatformConfig(id="wechat", name="微信公众号", enabled=False),
]

DEFAULT_PLATFORM_ID = "xiaohongshu"


def platform_name(platform_id: str) -> str:
    """Human-readable label for an id; unknown ids are returned verbatim."""
    return PLATFORM_NAMES.get(platform_id, platform_id)


def default_platforms() -> list[PlatformConfig]:
    """Fresh copies of the default list, safe to mutate."""
    return [p.model_copy() for p in DEFAULT_PLATFORMS]
