"""Notebook browsing state: language tabs, word selection and story weaving."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from .models import SavedItem, SavedSentence
from .storage import NotebookRepository


LOGGER = logging.getLogger(__name__)

MIN_STORY_WORDS = 2


class NotebookTab(str, Enum):
    WORDS = "words"
    SENTENCES = "sentences"


class StorySelectionError(ValueError):
    """Raised when fewer than two words are selected for a story."""


class NotebookBrowser:
    """Filter saved words and sentences by target language.

    Languages are listed in first-seen order, saved words before saved
    sentences. The first language becomes active until another is chosen.
    """

    def __init__(
        self,
        items: Iterable[SavedItem],
        sentences: Iterable[SavedSentence],
        *,
        native_lang_name: str,
    ) -> None:
        self._items: List[SavedItem] = list(items)
        self._sentences: List[SavedSentence] = list(sentences)
        self.native_lang_name = native_lang_name
        self._active_lang: Optional[str] = None
        self.active_tab = NotebookTab.WORDS
        self.selected_ids: Set[str] = set()
        self.story: Optional[str] = None
        self.loading_story = False
        self.playing_audio: Optional[str] = None

    @classmethod
    def from_repository(
        cls, repository: NotebookRepository, *, native_lang_name: str
    ) -> "NotebookBrowser":
        return cls(
            repository.iter_items(),
            repository.iter_sentences(),
            native_lang_name=native_lang_name,
        )

    @property
    def available_languages(self) -> List[str]:
        seen: Dict[str, None] = {}
        for item in self._items:
            seen.setdefault(item.target_lang, None)
        for sentence in self._sentences:
            seen.setdefault(sentence.target_lang, None)
        return list(seen)

    @property
    def is_empty(self) -> bool:
        return not self.available_languages

    @property
    def active_lang(self) -> Optional[str]:
        if self._active_lang is None:
            languages = self.available_languages
            if languages:
                self._active_lang = languages[0]
        return self._active_lang

    def select_language(self, language: str) -> None:
        self._active_lang = language
        self.selected_ids = set()

    def select_tab(self, tab: NotebookTab | str) -> None:
        self.active_tab = NotebookTab(tab)

    @property
    def filtered_words(self) -> List[SavedItem]:
        active = self.active_lang
        return [item for item in self._items if item.target_lang == active]

    @property
    def filtered_sentences(self) -> List[SavedSentence]:
        active = self.active_lang
        return [sentence for sentence in self._sentences if sentence.target_lang == active]

    def toggle_selection(self, item_id: str) -> bool:
        """Flip the selection of *item_id* and return whether it is now selected."""

        if item_id in self.selected_ids:
            self.selected_ids.discard(item_id)
            return False
        self.selected_ids.add(item_id)
        return True

    @property
    def selected_words(self) -> List[SavedItem]:
        return [item for item in self.filtered_words if item.id in self.selected_ids]

    @property
    def can_weave(self) -> bool:
        return not self.loading_story and len(self.selected_ids) >= MIN_STORY_WORDS

    def weave_story(self, assistant) -> str:
        """Ask *assistant* for a story that uses every selected word."""

        words = self.selected_words
        if len(words) < MIN_STORY_WORDS:
            raise StorySelectionError(
                f"Select at least {MIN_STORY_WORDS} words in {self.active_lang or 'one language'}"
            )

        self.loading_story = True
        try:
            story = assistant.weave_story(words, self.native_lang_name)
        finally:
            self.loading_story = False
        self.story = story
        LOGGER.info("Wove a story from %s word(s) in %s", len(words), self.active_lang)
        return story

    def close_story(self) -> None:
        self.story = None

    def play_sentence(self, sentence_id: str, text: str, speak: Callable[[str], object]) -> bool:
        """Speak *text* unless another sentence is already playing."""

        if self.playing_audio:
            LOGGER.debug("Ignoring playback of %s while %s plays", sentence_id, self.playing_audio)
            return False
        self.playing_audio = sentence_id
        try:
            speak(text)
        finally:
            self.playing_audio = None
        return True

    def forget_item(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self.selected_ids.discard(item_id)

    def forget_sentence(self, sentence_id: str) -> None:
        self._sentences = [s for s in self._sentences if s.id != sentence_id]


__all__ = ["MIN_STORY_WORDS", "NotebookBrowser", "NotebookTab", "StorySelectionError"]
