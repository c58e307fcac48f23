"""Static catalogue of the languages offered on the welcome screen."""

from __future__ import annotations

from typing import Optional, Tuple

from .models import Language

__all__ = [
    "DEFAULT_NATIVE",
    "DEFAULT_TARGET",
    "LANGUAGES",
    "find_language",
    "resolve_native",
    "resolve_target",
]


LANGUAGES: Tuple[Language, ...] = (
    Language("en", "English", "🇺🇸"),
    Language("es", "Spanish", "🇪🇸"),
    Language("fr", "French", "🇫🇷"),
    Language("de", "German", "🇩🇪"),
    Language("it", "Italian", "🇮🇹"),
    Language("pt", "Portuguese", "🇧🇷"),
    Language("ja", "Japanese", "🇯🇵"),
    Language("ko", "Korean", "🇰🇷"),
    Language("zh", "Chinese", "🇨🇳"),
    Language("ru", "Russian", "🇷🇺"),
)

DEFAULT_NATIVE = LANGUAGES[0]
DEFAULT_TARGET = LANGUAGES[1]


def find_language(code: Optional[str], default: Language) -> Language:
    """Return the catalogue entry for *code*, or *default* when it is unknown."""

    if code:
        normalized = code.strip().lower()
        for language in LANGUAGES:
            if language.code == normalized:
                return language
    return default


def resolve_native(code: Optional[str]) -> Language:
    return find_language(code, DEFAULT_NATIVE)


def resolve_target(code: Optional[str]) -> Language:
    return find_language(code, DEFAULT_TARGET)
