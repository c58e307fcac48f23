"""Persistence helpers for the learner's language choices."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Tuple

from ..config import AppConfig
from .languages import DEFAULT_NATIVE, DEFAULT_TARGET, resolve_native, resolve_target
from .models import AppMode, Language


LOGGER = logging.getLogger(__name__)


@dataclass
class UserSettings:
    """Language pair picked on the welcome screen plus the last active mode."""

    native_lang: str = DEFAULT_NATIVE.code
    target_lang: str = DEFAULT_TARGET.code
    mode: str = AppMode.SEARCH.value
    started: bool = False


def resolve_languages(settings: UserSettings) -> Tuple[Language, Language]:
    """Return the ``(native, target)`` languages described by *settings*."""

    return resolve_native(settings.native_lang), resolve_target(settings.target_lang)


def normalize_mode(value: object) -> str:
    try:
        return AppMode(str(value).upper()).value
    except ValueError:
        return AppMode.SEARCH.value


class SettingsStore:
    """Load and store :class:`UserSettings` alongside the notebook database."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._path = config.settings_file

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserSettings:
        if not self._path.exists():
            return UserSettings()

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError):
            LOGGER.warning("Ignoring corrupt settings file at %s", self._path)
            return UserSettings()

        settings = UserSettings()
        if not isinstance(payload, dict):
            return settings
        for field in fields(UserSettings):
            value = payload.get(field.name)
            if type(value) is type(getattr(settings, field.name)):
                setattr(settings, field.name, value)
        native, target = resolve_languages(settings)
        settings.native_lang = native.code
        settings.target_lang = target.code
        settings.mode = normalize_mode(settings.mode)
        return settings

    def save(self, settings: UserSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(settings)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def start(self, native_code: str, target_code: str) -> UserSettings:
        """Persist the chosen language pair and switch to search mode."""

        settings = self.load()
        settings.native_lang = resolve_native(native_code).code
        settings.target_lang = resolve_target(target_code).code
        settings.mode = AppMode.SEARCH.value
        settings.started = True
        self.save(settings)
        LOGGER.info(
            "Learner settings saved (native=%s, target=%s)",
            settings.native_lang,
            settings.target_lang,
        )
        return settings


__all__ = ["SettingsStore", "UserSettings", "normalize_mode", "resolve_languages"]
