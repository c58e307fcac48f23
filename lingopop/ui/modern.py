"""A Rich-powered console front-end for lookups, the notebook and flashcards."""

from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from ..services.flashcards import FlashcardSession
from ..services.models import DictionaryResult, SavedItem, SavedSentence
from ..services.notebook import NotebookBrowser, NotebookTab


class ModernUI:
    """Render notebook contents using Rich widgets."""

    def __init__(self, browser: NotebookBrowser, *, console: Optional[Console] = None) -> None:
        self._browser = browser
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> None:
        browser = self._browser
        console = self._console

        console.rule("[bold magenta]My Notebook")

        if browser.is_empty:
            console.print(
                Panel(
                    "Your notebook is empty.\n"
                    "Save words or sentences to get started: "
                    "[bold]python run.py lookup WORD --save[/bold]",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        console.print(self._build_language_tabs())
        words = browser.filtered_words
        sentences = browser.filtered_sentences
        console.print(
            Text(f"Words ({len(words)})  ·  Sentences ({len(sentences)})", style="dim"),
            justify="center",
        )
        if browser.story:
            console.print(self.build_story_panel(browser.story))

        if browser.active_tab is NotebookTab.WORDS:
            console.print(self._build_word_table(words))
        else:
            console.print(self._build_sentence_table(sentences))

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_language_tabs(self) -> Columns:
        active = self._browser.active_lang
        tabs = []
        for language in self._browser.available_languages:
            style = "bold white on grey23" if language == active else "dim"
            tabs.append(Text(f" {language} ", style=style))
        return Columns(tabs)

    def _build_word_table(self, words: Iterable[SavedItem]) -> Table:
        table = Table(box=box.SIMPLE_HEAVY, expand=True)
        table.add_column("", width=2)
        table.add_column("Word", style="bold")
        table.add_column("Explanation", overflow="ellipsis", no_wrap=True)
        table.add_column("Id", style="dim", no_wrap=True)
        rows = 0
        for item in words:
            marker = "☑" if item.id in self._browser.selected_ids else "☐"
            table.add_row(marker, item.word, item.explanation, item.id)
            rows += 1
        if not rows:
            table.add_row("", f"[dim]No words saved for {self._browser.active_lang}.", "", "")
        return table

    def _build_sentence_table(self, sentences: Iterable[SavedSentence]) -> Table:
        table = Table(box=box.SIMPLE_HEAVY, expand=True)
        table.add_column("Sentence", style="bold")
        table.add_column("Translation", style="dim")
        table.add_column("Id", style="dim", no_wrap=True)
        rows = 0
        for sentence in sentences:
            table.add_row(sentence.original, sentence.translated, sentence.id)
            rows += 1
        if not rows:
            table.add_row(f"[dim]No sentences saved for {self._browser.active_lang}.", "", "")
        return table

    @staticmethod
    def build_story_panel(story: str) -> Panel:
        return Panel(
            Text(story),
            title="✨ AI Story Time",
            border_style="magenta",
            box=box.ROUNDED,
        )


def build_result_panel(result: DictionaryResult, *, saved_id: Optional[str] = None) -> Panel:
    """Return a panel describing a dictionary lookup."""

    parts = [Text(result.explanation)]
    if result.examples:
        parts.append(Rule("Examples", style="cyan"))
        for example in result.examples:
            line = Text(f"“{example.original}”", style="italic")
            line.append(f"\n  {example.translated}", style="dim")
            parts.append(line)
    if result.conjugations is not None:
        conjugations = result.conjugations
        parts.append(Rule(f"{conjugations.infinitive} · {conjugations.tense_name}", style="cyan"))
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="dim")
        grid.add_column(style="bold")
        for entry in conjugations.forms:
            grid.add_row(entry.pronoun, entry.form)
        parts.append(grid)
    if result.friendly_note:
        parts.append(Rule(style="yellow"))
        parts.append(Text(f"💡 {result.friendly_note}", style="yellow"))

    subtitle = f"saved · {saved_id}" if saved_id else None
    return Panel(
        Group(*parts),
        title=f"[bold]{result.word}",
        subtitle=subtitle,
        border_style="cyan",
        box=box.ROUNDED,
    )


def build_card_panel(session: FlashcardSession) -> Panel:
    """Return the visible side of the current flashcard."""

    if session.finished:
        return Panel(
            Text("All Done!\nYou've reviewed all your words.", justify="center"),
            border_style="green",
            box=box.ROUNDED,
        )

    if not session.is_flipped:
        face = session.front()
        body = Group(
            Text(face.word, style="bold", justify="center"),
            Text("Tap to flip", style="dim", justify="center"),
        )
        return Panel(body, title=face.progress, border_style="white", box=box.ROUNDED)

    face = session.back()
    parts = [Text(face.explanation)]
    if face.example is not None:
        parts.append(Rule(style="magenta"))
        parts.append(Text(f"“{face.example.original}”", style="italic"))
        parts.append(Text(face.example.translated, style="dim"))
    return Panel(
        Group(*parts),
        title=f"[bold]{face.word}",
        subtitle=face.progress,
        border_style="magenta",
        box=box.ROUNDED,
    )


__all__ = ["ModernUI", "build_card_panel", "build_result_panel"]
