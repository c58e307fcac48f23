"""Flashcard review over saved words."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import ExampleSentence, SavedItem


class EmptyDeckError(ValueError):
    """Raised when a review is started without any saved words."""


@dataclass
class CardFace:
    word: str
    image_url: Optional[str] = None
    progress: str = ""
    explanation: str = ""
    example: Optional[ExampleSentence] = None


class FlashcardSession:
    """Walk through *items* one card at a time."""

    def __init__(self, items: Sequence[SavedItem]) -> None:
        if not items:
            raise EmptyDeckError("There are no saved words to review")
        self._items: List[SavedItem] = list(items)
        self.current_index = 0
        self.is_flipped = False
        self.finished = False

    def __len__(self) -> int:
        return len(self._items)

    @property
    def current(self) -> SavedItem:
        return self._items[self.current_index]

    @property
    def progress_label(self) -> str:
        return f"{self.current_index + 1} / {len(self._items)}"

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    def flip(self) -> None:
        self.is_flipped = not self.is_flipped

    def next(self) -> None:
        self.is_flipped = False
        if self.current_index < len(self._items) - 1:
            self.current_index += 1
        else:
            self.finished = True

    def previous(self) -> None:
        if self.current_index > 0:
            self.is_flipped = False
            self.current_index -= 1

    def restart(self) -> None:
        self.finished = False
        self.current_index = 0
        self.is_flipped = False

    def front(self) -> CardFace:
        item = self.current
        return CardFace(word=item.word, image_url=item.image_url, progress=self.progress_label)

    def back(self) -> CardFace:
        item = self.current
        return CardFace(
            word=item.word,
            progress=self.progress_label,
            explanation=item.explanation,
            example=item.examples[0] if item.examples else None,
        )

    def visible_face(self) -> CardFace:
        return self.back() if self.is_flipped else self.front()

    def speak_current(self, speak: Callable[[str], Any]) -> Any:
        return speak(self.current.word)

    def snapshot(self) -> Dict[str, Any]:
        face = self.visible_face()
        example = face.example
        return {
            "index": self.current_index,
            "count": len(self._items),
            "progress": self.progress_label,
            "flipped": self.is_flipped,
            "finished": self.finished,
            "card": {
                "item_id": self.current.id,
                "word": face.word,
                "image_url": face.image_url,
                "explanation": face.explanation or None,
                "example": (
                    {"original": example.original, "translated": example.translated}
                    if example is not None
                    else None
                ),
            },
        }


__all__ = ["CardFace", "EmptyDeckError", "FlashcardSession"]
