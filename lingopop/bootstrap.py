"""Bootstrap logic that prepares the storage directory and the notebook database."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from . import config as config_module
from .config import AppConfig, load_config

LOGGER = logging.getLogger(__name__)


_SCHEMA = """
PRAGMA foreign_keys = ON;
CREATE TABLE IF NOT EXISTS saved_items (
    id TEXT PRIMARY KEY,
    word TEXT NOT NULL,
    target_lang TEXT NOT NULL,
    explanation TEXT NOT NULL DEFAULT '',
    friendly_note TEXT NOT NULL DEFAULT '',
    examples TEXT NOT NULL DEFAULT '[]',
    conjugations TEXT,
    image_url TEXT,
    timestamp INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_saved_items_lang
    ON saved_items(target_lang, timestamp);

CREATE TABLE IF NOT EXISTS saved_sentences (
    id TEXT PRIMARY KEY,
    original TEXT NOT NULL,
    translated TEXT NOT NULL DEFAULT '',
    target_lang TEXT NOT NULL,
    timestamp INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_saved_sentences_lang
    ON saved_sentences(target_lang, timestamp);
"""


class BootstrapError(RuntimeError):
    """Raised when initialization cannot be completed."""


class Bootstrapper:
    """High level object orchestrating initialization steps."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        return self._config

    def initialize(self) -> None:
        """Run all bootstrap tasks."""

        LOGGER.debug("Starting bootstrap sequence")
        self._ensure_directories()
        self._ensure_database()
        LOGGER.info("Bootstrap completed successfully")

    def _ensure_directories(self) -> None:
        storage_root = self._config.storage_root
        if not config_module._ensure_writable_directory(storage_root):
            raise BootstrapError(f"Storage directory '{storage_root}' is not writable")
        LOGGER.debug("Ensured directory exists: %s", storage_root)

        database_parent = self._config.database_file.parent
        if not config_module._ensure_writable_directory(database_parent):
            raise BootstrapError(f"Database directory '{database_parent}' is not writable")

    def _ensure_database(self) -> None:
        LOGGER.debug("Ensuring database schema at %s", self._config.database_file)
        try:
            connection = sqlite3.connect(self._config.database_file)
        except sqlite3.Error as error:
            raise BootstrapError(f"Could not open notebook database: {error}") from error
        try:
            connection.executescript(_SCHEMA)
            connection.commit()
        finally:
            connection.close()


def initialize_app(config_path: Path | None = None) -> AppConfig:
    """Convenience helper that loads configuration and runs initialization."""

    config = load_config(config_path=config_path)
    bootstrapper = Bootstrapper(config)
    bootstrapper.initialize()
    return config


__all__ = ["BootstrapError", "Bootstrapper", "initialize_app"]
