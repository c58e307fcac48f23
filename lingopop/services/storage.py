"""Notebook persistence backed by SQLite."""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
import uuid
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import AppConfig
from .models import (
    Conjugation,
    DictionaryResult,
    ExampleSentence,
    SavedItem,
    SavedSentence,
    now_millis,
)


LOGGER = logging.getLogger(__name__)

_ITEM_COLUMNS = (
    "id, word, target_lang, explanation, friendly_note, examples, conjugations, "
    "image_url, timestamp"
)
_SENTENCE_COLUMNS = "id, original, translated, target_lang, timestamp"


def _new_id() -> str:
    return uuid.uuid4().hex


def _row_to_item(row: sqlite3.Row) -> SavedItem:
    raw_conjugations = row["conjugations"]
    conjugations = (
        Conjugation.from_dict(json.loads(raw_conjugations)) if raw_conjugations else None
    )
    examples = [ExampleSentence.from_dict(item) for item in json.loads(row["examples"] or "[]")]
    return SavedItem(
        word=row["word"],
        explanation=row["explanation"],
        examples=examples,
        friendly_note=row["friendly_note"],
        conjugations=conjugations,
        image_url=row["image_url"],
        timestamp=int(row["timestamp"]),
        id=row["id"],
        target_lang=row["target_lang"],
    )


def _row_to_sentence(row: sqlite3.Row) -> SavedSentence:
    return SavedSentence(
        id=row["id"],
        original=row["original"],
        translated=row["translated"],
        target_lang=row["target_lang"],
        timestamp=int(row["timestamp"]),
    )


class NotebookRepository:
    """CRUD helpers for saved words and saved sentences."""

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
    ) -> None:
        self._db_path = config.database_file
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting database events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any) -> Iterator[Dict[str, Any]]:
        """Emit a structured event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        try:
            yield event_payload
        except Exception as exc:
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            event_payload.setdefault("status", "ok")
            filtered = {
                key: value for key, value in event_payload.items() if value is not None
            }
            self._event_emitter(action, payload=filtered, duration_ms=duration_ms)

    def _execute(
        self,
        connection: sqlite3.Connection,
        statement: str,
        parameters: Sequence[Any] | Tuple[Any, ...] = (),
    ) -> sqlite3.Cursor:
        LOGGER.debug("Executing %s with %s parameter(s)", statement.split()[0], len(parameters))
        return connection.execute(statement, tuple(parameters))

    def _connect(self) -> sqlite3.Connection:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        return connection

    @contextlib.contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    # ---------------------------------------------------------------------
    # Saved words
    # ---------------------------------------------------------------------
    def add_item(self, result: DictionaryResult, target_lang: str) -> SavedItem:
        item = SavedItem.from_result(result, id=_new_id(), target_lang=target_lang)
        conjugations = (
            json.dumps(asdict(item.conjugations), ensure_ascii=False)
            if item.conjugations is not None
            else None
        )
        examples = json.dumps([asdict(example) for example in item.examples], ensure_ascii=False)
        with self._track_db_event(
            "add_item", table="saved_items", word=item.word, target_lang=target_lang
        ) as event:
            with self._session() as connection:
                self._execute(
                    connection,
                    f"INSERT INTO saved_items({_ITEM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        item.id,
                        item.word,
                        item.target_lang,
                        item.explanation,
                        item.friendly_note,
                        examples,
                        conjugations,
                        item.image_url,
                        item.timestamp,
                    ),
                )
            event["item_id"] = item.id
        LOGGER.debug("Saved word '%s' (%s) with id=%s", item.word, target_lang, item.id)
        return item

    def get_item(self, item_id: str) -> Optional[SavedItem]:
        with self._track_db_event("get_item", table="saved_items", item_id=item_id) as event:
            with self._session() as connection:
                row = self._execute(
                    connection,
                    f"SELECT {_ITEM_COLUMNS} FROM saved_items WHERE id = ?",
                    (item_id,),
                ).fetchone()
            event["found"] = row is not None
        return _row_to_item(row) if row is not None else None

    def find_item(self, word: str, target_lang: str) -> Optional[SavedItem]:
        """Return the saved entry for *word* in *target_lang*, ignoring case."""

        with self._track_db_event(
            "find_item", table="saved_items", word=word, target_lang=target_lang
        ) as event:
            with self._session() as connection:
                row = self._execute(
                    connection,
                    f"SELECT {_ITEM_COLUMNS} FROM saved_items "
                    "WHERE lower(word) = lower(?) AND target_lang = ? "
                    "ORDER BY timestamp DESC LIMIT 1",
                    (word.strip(), target_lang),
                ).fetchone()
            event["found"] = row is not None
        return _row_to_item(row) if row is not None else None

    def iter_items(self, target_lang: Optional[str] = None) -> List[SavedItem]:
        """Return saved words, newest first, optionally for one language."""

        query = f"SELECT {_ITEM_COLUMNS} FROM saved_items"
        params: List[Any] = []
        if target_lang is not None:
            query += " WHERE target_lang = ?"
            params.append(target_lang)
        query += " ORDER BY timestamp DESC, rowid DESC"
        with self._track_db_event(
            "iter_items", table="saved_items", target_lang=target_lang
        ) as event:
            with self._session() as connection:
                rows = self._execute(connection, query, params).fetchall()
            event["count"] = len(rows)
        return [_row_to_item(row) for row in rows]

    def remove_item(self, item_id: str) -> bool:
        with self._track_db_event("remove_item", table="saved_items", item_id=item_id) as event:
            with self._session() as connection:
                cursor = self._execute(
                    connection, "DELETE FROM saved_items WHERE id = ?", (item_id,)
                )
                removed = cursor.rowcount > 0
            event["removed"] = removed
        if removed:
            LOGGER.debug("Removed saved word %s", item_id)
        return removed

    # ---------------------------------------------------------------------
    # Saved sentences
    # ---------------------------------------------------------------------
    def add_sentence(self, original: str, translated: str, target_lang: str) -> SavedSentence:
        sentence = SavedSentence(
            id=_new_id(),
            original=original,
            translated=translated,
            target_lang=target_lang,
            timestamp=now_millis(),
        )
        with self._track_db_event(
            "add_sentence", table="saved_sentences", target_lang=target_lang
        ) as event:
            with self._session() as connection:
                self._execute(
                    connection,
                    f"INSERT INTO saved_sentences({_SENTENCE_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (
                        sentence.id,
                        sentence.original,
                        sentence.translated,
                        sentence.target_lang,
                        sentence.timestamp,
                    ),
                )
            event["sentence_id"] = sentence.id
        return sentence

    def get_sentence(self, sentence_id: str) -> Optional[SavedSentence]:
        with self._session() as connection:
            row = self._execute(
                connection,
                f"SELECT {_SENTENCE_COLUMNS} FROM saved_sentences WHERE id = ?",
                (sentence_id,),
            ).fetchone()
        return _row_to_sentence(row) if row is not None else None

    def iter_sentences(self, target_lang: Optional[str] = None) -> List[SavedSentence]:
        query = f"SELECT {_SENTENCE_COLUMNS} FROM saved_sentences"
        params: List[Any] = []
        if target_lang is not None:
            query += " WHERE target_lang = ?"
            params.append(target_lang)
        query += " ORDER BY timestamp DESC, rowid DESC"
        with self._track_db_event(
            "iter_sentences", table="saved_sentences", target_lang=target_lang
        ) as event:
            with self._session() as connection:
                rows = self._execute(connection, query, params).fetchall()
            event["count"] = len(rows)
        return [_row_to_sentence(row) for row in rows]

    def remove_sentence(self, sentence_id: str) -> bool:
        with self._track_db_event(
            "remove_sentence", table="saved_sentences", sentence_id=sentence_id
        ) as event:
            with self._session() as connection:
                cursor = self._execute(
                    connection, "DELETE FROM saved_sentences WHERE id = ?", (sentence_id,)
                )
                removed = cursor.rowcount > 0
            event["removed"] = removed
        return removed


__all__ = ["NotebookRepository"]
