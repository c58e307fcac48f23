"""Client for the hosted generative model that writes explanations, stories and speech."""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any, List, Optional, Protocol, Sequence

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, ValidationError

from ..config import AppConfig
from .events import emit_ai_event
from .models import (
    ChatMessage,
    Conjugation,
    ConjugationForm,
    DictionaryResult,
    ExampleSentence,
    Language,
    SavedItem,
    now_millis,
)


LOGGER = logging.getLogger(__name__)


class AIServiceError(RuntimeError):
    """Raised when the hosted model cannot produce a usable answer."""


class ExampleSchema(BaseModel):
    original: str = Field(description="Sentence written in the target language")
    translated: str = Field(description="Translation into the learner's native language")


class ConjugationFormSchema(BaseModel):
    pronoun: str
    form: str


class ConjugationSchema(BaseModel):
    infinitive: str
    tense_name: str = Field(description="For example 'Present Indicative'")
    forms: List[ConjugationFormSchema]


class WordExplanation(BaseModel):
    """Response shape requested from the model for a word lookup."""

    word: str
    explanation: str = Field(description="Short, friendly explanation in the native language")
    examples: List[ExampleSchema]
    friendly_note: str = Field(description="Usage tip, nuance or cultural note")
    conjugations: Optional[ConjugationSchema] = Field(
        default=None, description="Present tense conjugation when the word is a verb"
    )

    def to_result(self) -> DictionaryResult:
        conjugations = None
        if self.conjugations is not None:
            conjugations = Conjugation(
                infinitive=self.conjugations.infinitive,
                tense_name=self.conjugations.tense_name,
                forms=[
                    ConjugationForm(pronoun=item.pronoun, form=item.form)
                    for item in self.conjugations.forms
                ],
            )
        return DictionaryResult(
            word=self.word,
            explanation=self.explanation,
            examples=[
                ExampleSentence(original=item.original, translated=item.translated)
                for item in self.examples
            ],
            friendly_note=self.friendly_note,
            conjugations=conjugations,
            timestamp=now_millis(),
        )


class LanguageAssistant(Protocol):
    def explain_word(self, word: str, native: Language, target: Language) -> DictionaryResult:
        ...

    def illustrate_word(self, word: str) -> Optional[str]:
        ...

    def weave_story(self, items: Sequence[SavedItem], native_lang_name: str) -> str:
        ...

    def generate_speech(self, text: str) -> Optional[str]:
        ...

    def chat(
        self,
        result: DictionaryResult,
        history: Sequence[ChatMessage],
        message: str,
        native: Language,
    ) -> str:
        ...


class GeminiAssistant:
    """:class:`LanguageAssistant` backed by the ``google-genai`` SDK."""

    def __init__(self, config: AppConfig, *, client: Any = None) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self._config.api_key
            if not api_key:
                raise AIServiceError(
                    f"No API key configured; set the {self._config.api_key_env} environment variable"
                )
            self._client = genai.Client(api_key=api_key)
        return self._client

    def _generate(self, operation: str, *, model: str, contents: Any, config: Any = None) -> Any:
        client = self._get_client()
        start = time.perf_counter()
        status = "ok"
        try:
            return client.models.generate_content(model=model, contents=contents, config=config)
        except Exception as error:  # noqa: BLE001 - SDK raises many transport errors
            status = "error"
            raise AIServiceError(f"{operation} failed: {error}") from error
        finally:
            emit_ai_event(
                operation,
                payload={"model": model, "status": status},
                duration_ms=(time.perf_counter() - start) * 1000.0,
            )

    @staticmethod
    def _text_of(response: Any, operation: str) -> str:
        text = getattr(response, "text", None)
        if not text or not str(text).strip():
            raise AIServiceError(f"{operation} returned an empty response")
        return str(text).strip()

    def explain_word(self, word: str, native: Language, target: Language) -> DictionaryResult:
        cleaned = word.strip()
        if not cleaned:
            raise ValueError("A word is required")
        prompt = (
            f"You are a cheerful pocket dictionary for a {native.name} speaker learning "
            f"{target.name}. Explain the {target.name} word or phrase '{cleaned}'. "
            f"Write the explanation and friendly note in {native.name}. Give three short "
            f"example sentences in {target.name}, each with a {native.name} translation. "
            "If it is a verb, include its present tense conjugation; otherwise omit "
            "conjugations."
        )
        response = self._generate(
            "explain_word",
            model=self._config.text_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_json_schema=WordExplanation.model_json_schema(),
            ),
        )
        text = self._text_of(response, "explain_word")
        try:
            explanation = WordExplanation.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as error:
            raise AIServiceError(f"explain_word returned malformed JSON: {error}") from error
        LOGGER.info("Explained '%s' for %s -> %s", cleaned, native.code, target.code)
        return explanation.to_result()

    def illustrate_word(self, word: str) -> Optional[str]:
        client = self._get_client()
        prompt = f"A bright, friendly, minimal illustration representing '{word}'. No text."
        start = time.perf_counter()
        try:
            response = client.models.generate_images(
                model=self._config.image_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(number_of_images=1),
            )
        except Exception as error:  # noqa: BLE001 - SDK raises many transport errors
            raise AIServiceError(f"illustrate_word failed: {error}") from error
        finally:
            emit_ai_event(
                "illustrate_word",
                payload={"model": self._config.image_model},
                duration_ms=(time.perf_counter() - start) * 1000.0,
            )
        images = getattr(response, "generated_images", None) or []
        if not images or images[0].image is None or not images[0].image.image_bytes:
            LOGGER.warning("No illustration returned for '%s'", word)
            return None
        encoded = base64.b64encode(images[0].image.image_bytes).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def weave_story(self, items: Sequence[SavedItem], native_lang_name: str) -> str:
        words = [item.word for item in items]
        if len(words) < 2:
            raise ValueError("At least two words are needed to weave a story")
        prompt = (
            "Write a short, funny story (at most 150 words) that uses every one of these "
            f"words: {', '.join(words)}. Write the story in the language the words belong to, "
            f"then add a translation in {native_lang_name} after a blank line."
        )
        response = self._generate("weave_story", model=self._config.text_model, contents=prompt)
        return self._text_of(response, "weave_story")

    def generate_speech(self, text: str) -> Optional[str]:
        if not text.strip():
            return None
        response = self._generate(
            "generate_speech",
            model=self._config.speech_model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(
                            voice_name=self._config.speech_voice,
                        )
                    )
                ),
            ),
        )
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                data = getattr(inline, "data", None)
                if not data:
                    continue
                if isinstance(data, str):
                    return data
                return base64.b64encode(data).decode("ascii")
        LOGGER.warning("Speech synthesis returned no audio for %s characters", len(text))
        return None

    def chat(
        self,
        result: DictionaryResult,
        history: Sequence[ChatMessage],
        message: str,
        native: Language,
    ) -> str:
        if not message.strip():
            raise ValueError("A message is required")
        preamble = (
            f"You are a friendly language tutor. The learner just looked up '{result.word}', "
            f"explained as: {result.explanation}. Answer follow-up questions briefly in "
            f"{native.name}."
        )
        contents = [types.Content(role="user", parts=[types.Part(text=preamble)])]
        for entry in history:
            contents.append(types.Content(role=entry.role, parts=[types.Part(text=entry.text)]))
        contents.append(types.Content(role="user", parts=[types.Part(text=message)]))
        response = self._generate("chat", model=self._config.text_model, contents=contents)
        return self._text_of(response, "chat")


def create_assistant(config: AppConfig) -> GeminiAssistant:
    """Return the default assistant for *config*."""

    return GeminiAssistant(config)


__all__ = [
    "AIServiceError",
    "GeminiAssistant",
    "LanguageAssistant",
    "WordExplanation",
    "create_assistant",
]
