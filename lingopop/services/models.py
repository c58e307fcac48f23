"""Plain data shapes shared by the notebook, the assistant and the web layer."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional


ChatRole = Literal["user", "model"]


def now_millis() -> int:
    """Return the current time as epoch milliseconds."""

    return int(time.time() * 1000)


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    flag: str

    @property
    def label(self) -> str:
        return f"{self.flag} {self.name}"


@dataclass
class ExampleSentence:
    original: str
    translated: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExampleSentence":
        return cls(
            original=str(data.get("original", "")),
            translated=str(data.get("translated", "")),
        )


@dataclass
class ConjugationForm:
    pronoun: str
    form: str


@dataclass
class Conjugation:
    infinitive: str
    tense_name: str
    forms: List[ConjugationForm] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Conjugation":
        forms = [
            ConjugationForm(pronoun=str(item.get("pronoun", "")), form=str(item.get("form", "")))
            for item in data.get("forms") or []
        ]
        return cls(
            infinitive=str(data.get("infinitive", "")),
            tense_name=str(data.get("tense_name", "")),
            forms=forms,
        )


@dataclass
class DictionaryResult:
    """An AI-generated explanation of a single word."""

    word: str
    explanation: str
    examples: List[ExampleSentence] = field(default_factory=list)
    friendly_note: str = ""
    conjugations: Optional[Conjugation] = None
    image_url: Optional[str] = None
    timestamp: int = field(default_factory=now_millis)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DictionaryResult":
        conjugations = data.get("conjugations")
        return cls(
            word=str(data["word"]),
            explanation=str(data.get("explanation", "")),
            examples=[ExampleSentence.from_dict(item) for item in data.get("examples") or []],
            friendly_note=str(data.get("friendly_note", "")),
            conjugations=Conjugation.from_dict(conjugations) if conjugations else None,
            image_url=data.get("image_url") or None,
            timestamp=int(data.get("timestamp") or now_millis()),
        )


@dataclass
class SavedItem(DictionaryResult):
    """A dictionary result stored in the notebook under a target language."""

    id: str = ""
    target_lang: str = ""

    @classmethod
    def from_result(cls, result: DictionaryResult, *, id: str, target_lang: str) -> "SavedItem":
        return cls(
            word=result.word,
            explanation=result.explanation,
            examples=list(result.examples),
            friendly_note=result.friendly_note,
            conjugations=result.conjugations,
            image_url=result.image_url,
            timestamp=result.timestamp,
            id=id,
            target_lang=target_lang,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SavedItem":
        result = DictionaryResult.from_dict(data)
        return cls.from_result(
            result,
            id=str(data["id"]),
            target_lang=str(data.get("target_lang", "")),
        )


@dataclass
class SavedSentence:
    id: str
    original: str
    translated: str
    target_lang: str
    timestamp: int = field(default_factory=now_millis)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChatMessage:
    role: ChatRole
    text: str


class AppMode(str, Enum):
    SEARCH = "SEARCH"
    NOTEBOOK = "NOTEBOOK"
    FLASHCARDS = "FLASHCARDS"


__all__ = [
    "AppMode",
    "ChatMessage",
    "ChatRole",
    "Conjugation",
    "ConjugationForm",
    "DictionaryResult",
    "ExampleSentence",
    "Language",
    "SavedItem",
    "SavedSentence",
    "now_millis",
]
