"""Plain-text notebook listing for terminals without rich rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..services.notebook import NotebookBrowser, NotebookTab


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI that prints the active notebook tab."""

    def __init__(self, browser: NotebookBrowser) -> None:
        self._browser = browser

    def run(self) -> None:
        print("LingoPop – My Notebook")
        print("=" * 40)
        if self._browser.is_empty:
            print("Your notebook is empty. Save words or sentences to get started.")
            return

        languages = ", ".join(
            f"[{language}]" if language == self._browser.active_lang else language
            for language in self._browser.available_languages
        )
        print(f"Languages: {languages}")
        print()
        for section in self._build_sections():
            print(section.title)
            print("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                print(entry)
            if not has_entries:
                print(f"(nothing saved for {self._browser.active_lang})")
            print()

    def _build_sections(self) -> Iterable[ConsoleSection]:
        browser = self._browser
        if browser.active_tab is NotebookTab.WORDS:
            words = browser.filtered_words
            yield ConsoleSection(
                title=f"Words ({len(words)})",
                entries=(f"  {item.word} – {item.explanation} [{item.id}]" for item in words),
            )
        else:
            sentences = browser.filtered_sentences
            yield ConsoleSection(
                title=f"Sentences ({len(sentences)})",
                entries=(
                    f"  {sentence.original}\n    {sentence.translated} [{sentence.id}]"
                    for sentence in sentences
                ),
            )


__all__ = ["ConsoleUI"]
