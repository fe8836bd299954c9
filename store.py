"""Persisted, user-editable remix settings.

One JSON object on disk. Loading merges it shallowly over the defaults;
every mutation writes the full snapshot back immediately.
"""
import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from agent.modules.remix import AISettings, DEFAULT_ENDPOINT, DEFAULT_MODEL
from agent.platforms import DEFAULT_PLATFORM_ID, PlatformConfig, default_platforms

logger = logging.getLogger(__name__)


class RemixSettings(BaseModel):
    platforms: list[PlatformConfig] = Field(default_factory=default_platforms)
    default_platform: str = DEFAULT_PLATFORM_ID
    auto_format: bool = True

    ai_enabled: bool = False
    ai_api_key: str = ""
    ai_model: str = DEFAULT_MODEL
    ai_endpoint: str = DEFAULT_ENDPOINT

    @model_validator(mode="after")
    def _check_registry(self) -> "RemixSettings":
        ids = [p.id for p in self.platforms]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate platform ids: {ids}")
        if self.default_platform not in ids:
            raise ValueError(f"default platform {self.default_platform!r} is not registered")
        return self

    def get_platform(self, platform_id: str) -> PlatformConfig:
        for p in self.platforms:
            if p.id == platform_id:
                return p
        raise KeyError(platform_id)

    def enabled_platforms(self) -> list[PlatformConfig]:
        return [p for p in self.platforms if p.enabled]

    def ai_snapshot(self) -> AISettings:
        return AISettings(
            enabled=self.ai_enabled,
            api_key=self.ai_api_key,
            model=self.ai_model,
            endpoint=self.ai_endpoint,
        )


def _settings_path() -> Path:
    from config import settings
    return Path(settings.settings_path)


class SettingsStore:
    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or _settings_path()).expanduser()
        self.settings = self.load()

    @property
    def path(self) -> Path:
        return self._path

    def _read_persisted(self) -> dict:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: top level is not an object", self._path)
            return {}
        return data

    def load(self) -> RemixSettings:
        """Defaults, shallowly overridden by whatever was last persisted."""
        merged = RemixSettings().model_dump()
        merged.update(self._read_persisted())
        try:
            return RemixSettings.model_validate(merged)
        except ValidationError as e:
            logger.warning("Persisted settings are invalid, using defaults: %s", e)
            return RemixSettings()

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(self.settings.model_dump(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    # ── mutations (each saves) ────────────────────────────────────────────────

    def set_platform_enabled(self, platform_id: str, enabled: bool) -> None:
        self.settings.get_platform(platform_id).enabled = enabled
        self.save()

    def set_default_platform(self, platform_id: str) -> None:
        self.settings.get_platform(platform_id)
        self.settings.default_platform = platform_id
        self.save()

    def set_auto_format(self, value: bool) -> None:
        self.settings.auto_format = value
        self.save()

    def set_ai_enabled(self, value: bool) -> None:
        self.settings.ai_enabled = value
        self.save()

    def set_ai_api_key(self, value: str) -> None:
        self.settings.ai_api_key = value
        self.save()

    def set_ai_model(self, value: str) -> None:
        self.settings.ai_model = value
        self.save()

    def set_ai_endpoint(self, value: str) -> None:
        self.settings.ai_endpoint = value
        self.save()

    # ── reads ─────────────────────────────────────────────────────────────────

    def enabled_platforms(self) -> list[PlatformConfig]:
        return self.settings.enabled_platforms()

    def ai_snapshot(self) -> AISettings:
        return self.settings.ai_snapshot()
