"""
Pure-function platform routing.

Resolves a platform id to the variant that serves it: the rule-based
formatter and the prompt builder for that platform. The set of variants is
closed; any id outside it resolves to the GENERIC variant, which formats as
identity and prompts with a generic template naming the platform.

No I/O, no settings. Everything here is deterministic and testable.
"""
from dataclasses import dataclass
from functools import partial
from typing import Callable

from agent.modules import format as fmt
from agent.platforms import Platform, platform_name
from agent.prompts import remix as prompts


@dataclass(frozen=True)
class Variant:
    platform: Platform
    formatter: Callable[[str], str]
    prompt_builder: Callable[[str], str]


_FORMATTERS: dict[Platform, Callable[[str], str]] = {
    Platform.XIAOHONGSHU: fmt.format_xiaohongshu,
    Platform.JIKE: fmt.format_jike,
    Platform.X: fmt.format_x,
    Platform.WECHAT: fmt.format_wechat,
}


def _platform_for(platform_id: str) -> Platform:
    try:
        return Platform(platform_id)
    except ValueError:
        return Platform.GENERIC


def resolve(platform_id: str) -> Variant:
    """Return the (formatter, prompt builder) pair for ``platform_id``."""
    platform = _platform_for(platform_id)
    if platform is Platform.GENERIC:
        return Variant(
            platform=Platform.GENERIC,
            formatter=fmt.passthrough,
            prompt_builder=partial(prompts.render_generic, platform_name(platform_id)),
        )
    return Variant(
        platform=platform,
        formatter=_FORMATTERS[platform],
        prompt_builder=partial(prompts.render, platform),
    )


def format_content(content: str, platform_id: str) -> str:
    """Rule-based rewrite of ``content`` for ``platform_id``. Never raises."""
    return resolve(platform_id).formatter(content)


def build_prompt(content: str, platform_id: str) -> str:
    """Natural-language rewrite instruction for ``platform_id``."""
    return resolve(platform_id).prompt_builder(content)
