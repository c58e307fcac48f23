"""Configuration loading utilities for the LingoPop application."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple


LOGGER = logging.getLogger(__name__)


_WRITE_PROBE = ".lingopop_write_check"

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "imagen-4.0-generate-001"
DEFAULT_SPEECH_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_SPEECH_VOICE = "Kore"
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"


def _ensure_writable_directory(path: Path) -> bool:
    """Create *path* if needed and report whether a file can be written there."""

    try:
        path.mkdir(parents=True, exist_ok=True)
        (path / _WRITE_PROBE).write_text("ok", encoding="utf-8")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            (path / _WRITE_PROBE).unlink()
    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return the first writable directory and whether it was a fallback.

    If neither *preferred* nor any fallback works, *preferred* is returned
    unchanged so bootstrap can raise a clear error about it.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    candidates = [path.resolve() for path in fallbacks]
    for candidate in candidates:
        if candidate != preferred and _ensure_writable_directory(candidate):
            LOGGER.warning("Cannot write %s to '%s'; using '%s' instead.", label, preferred, candidate)
            return candidate, True

    LOGGER.warning("Cannot write %s to '%s' and there is nowhere else to go.", label, preferred)
    return preferred, False


def _resolve_database_file(
    preferred: Path,
    *,
    preferred_storage: Path,
    storage_root: Path,
) -> Path:
    """Keep the notebook database next to the storage root that was chosen.

    A database that lived inside the preferred storage directory moves along
    with it to the fallback; any other unwritable location collapses to a
    file of the same name directly under *storage_root*.
    """

    candidates = [preferred]
    if storage_root != preferred_storage:
        with contextlib.suppress(ValueError):
            relative = preferred.relative_to(preferred_storage)
            candidates.insert(0, storage_root / relative)
    candidates.append(storage_root / preferred.name)

    for candidate in dict.fromkeys(path.resolve() for path in candidates):
        if _ensure_writable_directory(candidate.parent):
            if candidate != preferred:
                LOGGER.warning("Cannot write database to '%s'; using '%s' instead.", preferred, candidate)
            return candidate

    LOGGER.warning("Cannot write database to '%s' and there is nowhere else to go.", preferred)
    return preferred


@dataclass(frozen=True)
class AppConfig:
    """Runtime paths and generative model settings."""

    storage_root: Path
    database_file: Path
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    speech_model: str = DEFAULT_SPEECH_MODEL
    speech_voice: str = DEFAULT_SPEECH_VOICE
    api_key_env: str = DEFAULT_API_KEY_ENV

    @property
    def settings_file(self) -> Path:
        return (self.storage_root / "settings.json").resolve()

    @property
    def api_key(self) -> Optional[str]:
        """Return the API key from the configured environment variable."""

        value = os.environ.get(self.api_key_env, "").strip()
        return value or None

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_storage = (base_path / mapping["storage_root"]).resolve()
        storage_root, _ = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(Path.home() / ".lingopop" / "storage",),
        )
        database_file = _resolve_database_file(
            (base_path / mapping["database_file"]).resolve(),
            preferred_storage=preferred_storage,
            storage_root=storage_root,
        )

        def _text(key: str, default: str) -> str:
            return str(mapping.get(key) or default)

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            text_model=_text("text_model", DEFAULT_TEXT_MODEL),
            image_model=_text("image_model", DEFAULT_IMAGE_MODEL),
            speech_model=_text("speech_model", DEFAULT_SPEECH_MODEL),
            speech_voice=_text("speech_voice", DEFAULT_SPEECH_VOICE),
            api_key_env=_text("api_key_env", DEFAULT_API_KEY_ENV),
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Read ``config/default.json`` (or *config_path*) relative to the project root."""

    project_root = Path(__file__).resolve().parent.parent
    path = config_path or project_root / "config" / "default.json"
    raw_config = json.loads(path.read_text(encoding="utf-8"))
    return AppConfig.from_mapping(raw_config, base_path=project_root)


__all__ = ["AppConfig", "load_config"]
