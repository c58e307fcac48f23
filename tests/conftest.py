from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lingopop.bootstrap import Bootstrapper
from lingopop.config import AppConfig
from lingopop.services.models import (
    ChatMessage,
    Conjugation,
    ConjugationForm,
    DictionaryResult,
    ExampleSentence,
    Language,
    SavedItem,
)


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/notebook.db",
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


def make_result(word: str, **overrides: Any) -> DictionaryResult:
    data: Dict[str, Any] = {
        "word": word,
        "explanation": f"Meaning of {word}",
        "examples": [ExampleSentence(original=f"Uso {word} hoy.", translated=f"I use {word} today.")],
        "friendly_note": "Handy in cafés.",
    }
    data.update(overrides)
    return DictionaryResult(**data)


SPEECH_SAMPLES = np.array([0, 16_384, -32_768, 32_767], dtype="<i2")
SPEECH_BASE64 = base64.b64encode(SPEECH_SAMPLES.tobytes()).decode("ascii")


class FakeAssistant:
    """In-memory stand-in for the hosted model."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.speech: Optional[str] = SPEECH_BASE64
        self.error: Optional[Exception] = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.error is not None:
            raise self.error

    def explain_word(self, word: str, native: Language, target: Language) -> DictionaryResult:
        self._record("explain_word", word, native.code, target.code)
        conjugations = None
        if word == "hablar":
            conjugations = Conjugation(
                infinitive="hablar",
                tense_name="Present Indicative",
                forms=[ConjugationForm("yo", "hablo"), ConjugationForm("tú", "hablas")],
            )
        return make_result(word, conjugations=conjugations)

    def illustrate_word(self, word: str) -> Optional[str]:
        self._record("illustrate_word", word)
        return "data:image/png;base64,iVBORw0KGgo="

    def weave_story(self, items: Sequence[SavedItem], native_lang_name: str) -> str:
        words = [item.word for item in items]
        self._record("weave_story", tuple(sorted(words)), native_lang_name)
        return "Once upon a time: " + ", ".join(sorted(words))

    def generate_speech(self, text: str) -> Optional[str]:
        self._record("generate_speech", text)
        return self.speech

    def chat(
        self,
        result: DictionaryResult,
        history: Sequence[ChatMessage],
        message: str,
        native: Language,
    ) -> str:
        self._record("chat", result.word, len(history), message, native.code)
        return f"About {result.word}: {message}"


@pytest.fixture()
def fake_assistant() -> FakeAssistant:
    return FakeAssistant()
