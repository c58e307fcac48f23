"""FastAPI application powering the LingoPop web UI."""

from __future__ import annotations

import asyncio
import contextvars
import functools
import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional, TypeVar

from fastapi import FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
from starlette.types import ASGIApp, Receive, Scope, Send

from ..config import AppConfig
from ..processing import AudioDecodeError, decode_base64_audio, pcm16_to_wav_bytes
from ..services.assistant import AIServiceError, LanguageAssistant, create_assistant
from ..services.events import emit_db_event, emit_structured_event
from ..services.flashcards import EmptyDeckError, FlashcardSession
from ..services.languages import LANGUAGES, resolve_native, resolve_target
from ..services.models import ChatMessage, DictionaryResult, SavedItem, SavedSentence
from ..services.notebook import NotebookBrowser, NotebookTab, StorySelectionError
from ..services.settings import SettingsStore, normalize_mode, resolve_languages
from ..services.storage import NotebookRepository

T = TypeVar("T")

_TEMPLATE_PATH = Path(__file__).parent / "templates" / "index.html"
_FLASHCARD_SESSION_LIMIT = 50

_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "lingopop_request_id",
    default=None,
)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


def _collect_correlation_context() -> Dict[str, str]:
    request_id = _REQUEST_ID_VAR.get()
    return {"request_id": request_id} if request_id else {}


class RequestContextMiddleware:
    """Assign a correlation identifier to each request and expose it via contextvars."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _new_correlation_id()
        token = _REQUEST_ID_VAR.set(request_id)

        async def send_with_header(message: Dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("ascii")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            _REQUEST_ID_VAR.reset(token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra or {})
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        for key, value in _collect_correlation_context().items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("lingopop.events"), {})


def _log_event(message: str, **context: Any) -> None:
    emit_structured_event(
        "APP_EVENT",
        message,
        context=context,
        correlation=_collect_correlation_context(),
        logger=EVENT_LOGGER,
    )


def _emit_repository_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
) -> None:
    emit_db_event(
        action,
        payload=payload,
        correlation=_collect_correlation_context(),
        duration_ms=duration_ms,
        logger=EVENT_LOGGER,
    )


async def _run_blocking(operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking call in the default executor, keeping the request context."""

    loop = asyncio.get_running_loop()
    context = contextvars.copy_context()
    call = functools.partial(context.run, operation, *args, **kwargs)
    return await loop.run_in_executor(None, call)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------
class ExamplePayload(BaseModel):
    original: str
    translated: str = ""


class ConjugationFormPayload(BaseModel):
    pronoun: str
    form: str


class ConjugationPayload(BaseModel):
    infinitive: str
    tense_name: str = ""
    forms: List[ConjugationFormPayload] = Field(default_factory=list)


class DictionaryResultPayload(BaseModel):
    word: str
    explanation: str = ""
    examples: List[ExamplePayload] = Field(default_factory=list)
    friendly_note: str = ""
    conjugations: Optional[ConjugationPayload] = None
    image_url: Optional[str] = None
    timestamp: Optional[int] = None

    def to_result(self) -> DictionaryResult:
        return DictionaryResult.from_dict(self.model_dump())


class LookupPayload(BaseModel):
    word: str
    native_lang: Optional[str] = None
    target_lang: Optional[str] = None
    include_image: bool = False


class SaveWordPayload(BaseModel):
    result: DictionaryResultPayload
    target_lang: Optional[str] = None


class SaveSentencePayload(BaseModel):
    original: str
    translated: str = ""
    target_lang: Optional[str] = None


class StoryPayload(BaseModel):
    language: str
    item_ids: List[str]


class SpeechPayload(BaseModel):
    text: str


class ChatMessagePayload(BaseModel):
    role: Literal["user", "model"]
    text: str


class ChatPayload(BaseModel):
    result: DictionaryResultPayload
    history: List[ChatMessagePayload] = Field(default_factory=list)
    message: str
    native_lang: Optional[str] = None


class SettingsPayload(BaseModel):
    native_lang: str
    target_lang: str
    mode: Optional[str] = None


class FlashcardStartPayload(BaseModel):
    language: Optional[str] = None


FlashcardAction = Literal["flip", "next", "previous", "restart"]


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------
def _serialize_item(item: SavedItem) -> Dict[str, Any]:
    return asdict(item)


def _serialize_sentence(sentence: SavedSentence) -> Dict[str, Any]:
    return sentence.to_dict()


def _serialize_languages() -> List[Dict[str, str]]:
    return [asdict(language) for language in LANGUAGES]


class FlashcardSessionStore:
    """Thread-safe registry of active review sessions, oldest evicted first."""

    def __init__(self, limit: int = _FLASHCARD_SESSION_LIMIT) -> None:
        self._limit = max(1, limit)
        self._sessions: "OrderedDict[str, FlashcardSession]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: FlashcardSession) -> str:
        session_id = _new_correlation_id()
        with self._lock:
            self._sessions[session_id] = session
            while len(self._sessions) > self._limit:
                self._sessions.popitem(last=False)
        return session_id

    def get(self, session_id: str) -> Optional[FlashcardSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def create_app(
    repository: NotebookRepository,
    *,
    config: AppConfig,
    assistant: Optional[LanguageAssistant] = None,
    root_path: str | None = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    app = FastAPI(
        title="LingoPop",
        description="Your fun AI pocket dictionary",
        root_path=root_path or "",
    )
    app.state.server = None
    repository.configure_event_emitter(_emit_repository_event)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    settings_store = SettingsStore(config)
    active_assistant: LanguageAssistant = assistant or create_assistant(config)
    flashcard_sessions = FlashcardSessionStore()
    app.state.assistant = active_assistant
    app.state.flashcard_sessions = flashcard_sessions

    index_html = _TEMPLATE_PATH.read_text(encoding="utf-8")

    def _current_languages():
        return resolve_languages(settings_store.load())

    def _require_item(item_id: str) -> SavedItem:
        item = repository.get_item(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Saved word not found")
        return item

    def _require_session(session_id: str) -> FlashcardSession:
        session = flashcard_sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Flashcard session not found")
        return session

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        scope_root = request.scope.get("root_path") or ""
        return HTMLResponse(index_html.replace("__LINGOPOP_ROOT__", str(scope_root).rstrip("/")))

    @app.get("/api/languages")
    async def list_languages() -> Dict[str, Any]:
        return {"languages": _serialize_languages()}

    @app.get("/api/settings")
    async def get_settings() -> Dict[str, Any]:
        settings = settings_store.load()
        native, target = resolve_languages(settings)
        _log_event("Loaded settings", native=native.code, target=target.code, mode=settings.mode)
        return {
            "settings": asdict(settings),
            "native": asdict(native),
            "target": asdict(target),
        }

    @app.put("/api/settings")
    async def update_settings(payload: SettingsPayload) -> Dict[str, Any]:
        settings = settings_store.start(payload.native_lang, payload.target_lang)
        if payload.mode is not None:
            settings.mode = normalize_mode(payload.mode)
            settings_store.save(settings)
        native, target = resolve_languages(settings)
        _log_event("Persisted settings", native=native.code, target=target.code, mode=settings.mode)
        return {
            "settings": asdict(settings),
            "native": asdict(native),
            "target": asdict(target),
        }

    @app.post("/api/lookup")
    async def lookup_word(payload: LookupPayload) -> Dict[str, Any]:
        word = payload.word.strip()
        if not word:
            raise HTTPException(status_code=400, detail="A word is required")

        default_native, default_target = _current_languages()
        native = resolve_native(payload.native_lang) if payload.native_lang else default_native
        target = resolve_target(payload.target_lang) if payload.target_lang else default_target
        _log_event("Looking up word", word=word, native=native.code, target=target.code)
        try:
            result = await _run_blocking(active_assistant.explain_word, word, native, target)
        except AIServiceError as error:
            raise HTTPException(status_code=502, detail=str(error)) from error

        if payload.include_image:
            try:
                result.image_url = await _run_blocking(active_assistant.illustrate_word, result.word)
            except AIServiceError as error:
                LOGGER.warning("Illustration for '%s' failed: %s", result.word, error)

        existing = repository.find_item(result.word, target.name)
        return {
            "result": result.to_dict(),
            "target_lang": target.name,
            "saved_item_id": existing.id if existing is not None else None,
        }

    @app.post("/api/chat")
    async def chat_about_word(payload: ChatPayload) -> Dict[str, Any]:
        default_native, _ = _current_languages()
        native = resolve_native(payload.native_lang) if payload.native_lang else default_native
        history = [ChatMessage(role=entry.role, text=entry.text) for entry in payload.history]
        try:
            reply = await _run_blocking(
                active_assistant.chat,
                payload.result.to_result(),
                history,
                payload.message,
                native,
            )
        except ValueError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except AIServiceError as error:
            raise HTTPException(status_code=502, detail=str(error)) from error
        return {"message": {"role": "model", "text": reply}}

    @app.get("/api/notebook")
    async def get_notebook(
        language: Optional[str] = Query(None),
        tab: NotebookTab = Query(NotebookTab.WORDS),
    ) -> Dict[str, Any]:
        native, _ = _current_languages()
        browser = NotebookBrowser.from_repository(repository, native_lang_name=native.name)
        if language and language in browser.available_languages:
            browser.select_language(language)
        browser.select_tab(tab)
        words = browser.filtered_words
        sentences = browser.filtered_sentences
        return {
            "empty": browser.is_empty,
            "languages": browser.available_languages,
            "active_language": browser.active_lang,
            "tab": browser.active_tab.value,
            "counts": {"words": len(words), "sentences": len(sentences)},
            "words": [_serialize_item(item) for item in words],
            "sentences": [_serialize_sentence(sentence) for sentence in sentences],
        }

    @app.post("/api/notebook/words", status_code=status.HTTP_201_CREATED)
    async def save_word(payload: SaveWordPayload, response: Response) -> Dict[str, Any]:
        _, default_target = _current_languages()
        target_name = payload.target_lang or default_target.name
        result = payload.result.to_result()
        if not result.word.strip():
            raise HTTPException(status_code=400, detail="A word is required")
        existing = repository.find_item(result.word, target_name)
        if existing is not None:
            response.status_code = status.HTTP_200_OK
            return {"item": _serialize_item(existing), "created": False}
        item = repository.add_item(result, target_name)
        _log_event("Saved word", item_id=item.id, word=item.word, target_lang=target_name)
        return {"item": _serialize_item(item), "created": True}

    @app.delete(
        "/api/notebook/words/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    async def delete_word(item_id: str) -> Response:
        if not repository.remove_item(item_id):
            raise HTTPException(status_code=404, detail="Saved word not found")
        _log_event("Deleted word", item_id=item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/notebook/sentences", status_code=status.HTTP_201_CREATED)
    async def save_sentence(payload: SaveSentencePayload) -> Dict[str, Any]:
        original = payload.original.strip()
        if not original:
            raise HTTPException(status_code=400, detail="A sentence is required")
        _, default_target = _current_languages()
        sentence = repository.add_sentence(
            original,
            payload.translated.strip(),
            payload.target_lang or default_target.name,
        )
        _log_event("Saved sentence", sentence_id=sentence.id, target_lang=sentence.target_lang)
        return {"sentence": _serialize_sentence(sentence)}

    @app.delete(
        "/api/notebook/sentences/{sentence_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    async def delete_sentence(sentence_id: str) -> Response:
        if not repository.remove_sentence(sentence_id):
            raise HTTPException(status_code=404, detail="Saved sentence not found")
        _log_event("Deleted sentence", sentence_id=sentence_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/story")
    async def weave_story(payload: StoryPayload) -> Dict[str, Any]:
        native, _ = _current_languages()
        browser = NotebookBrowser.from_repository(repository, native_lang_name=native.name)
        browser.select_language(payload.language)
        for item_id in dict.fromkeys(payload.item_ids):
            browser.toggle_selection(item_id)
        try:
            story = await _run_blocking(browser.weave_story, active_assistant)
        except StorySelectionError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except AIServiceError as error:
            raise HTTPException(status_code=502, detail=str(error)) from error
        return {
            "story": story,
            "language": payload.language,
            "words": [item.word for item in browser.selected_words],
        }

    @app.post("/api/speech", response_class=Response)
    async def synthesize_speech(payload: SpeechPayload) -> Response:
        text = payload.text.strip()
        if not text:
            raise HTTPException(status_code=400, detail="Text is required")
        try:
            encoded = await _run_blocking(active_assistant.generate_speech, text)
        except AIServiceError as error:
            raise HTTPException(status_code=502, detail=str(error)) from error
        if not encoded:
            raise HTTPException(status_code=502, detail="No audio was generated")
        try:
            wav = pcm16_to_wav_bytes(decode_base64_audio(encoded))
        except AudioDecodeError as error:
            raise HTTPException(status_code=502, detail=str(error)) from error
        LOGGER.debug("Synthesized %s bytes of speech for %s characters", len(wav), len(text))
        return Response(content=wav, media_type="audio/wav")

    @app.post("/api/flashcards", status_code=status.HTTP_201_CREATED)
    async def start_flashcards(payload: FlashcardStartPayload) -> Dict[str, Any]:
        items = repository.iter_items(payload.language)
        try:
            session = FlashcardSession(items)
        except EmptyDeckError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        session_id = flashcard_sessions.add(session)
        _log_event("Started flashcards", session_id=session_id, card_count=len(session))
        return {"session_id": session_id, **session.snapshot()}

    @app.get("/api/flashcards/{session_id}")
    async def get_flashcards(session_id: str) -> Dict[str, Any]:
        session = _require_session(session_id)
        return {"session_id": session_id, **session.snapshot()}

    @app.post("/api/flashcards/{session_id}/{action}")
    async def advance_flashcards(session_id: str, action: FlashcardAction) -> Dict[str, Any]:
        session = _require_session(session_id)
        handlers: Dict[str, Callable[[], None]] = {
            "flip": session.flip,
            "next": session.next,
            "previous": session.previous,
            "restart": session.restart,
        }
        handlers[action]()
        return {"session_id": session_id, **session.snapshot()}

    @app.get("/api/notebook/words/{item_id}")
    async def get_word(item_id: str) -> Dict[str, Any]:
        return {"item": _serialize_item(_require_item(item_id))}

    return app


__all__ = ["FlashcardSessionStore", "create_app"]
