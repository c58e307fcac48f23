"""Entry-point for the LingoPop application."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
import uvicorn
from rich.console import Console

from lingopop.bootstrap import initialize_app
from lingopop.logging_utils import build_default_handlers, configure_logging
from lingopop.processing import (
    AudioDecodeError,
    decode_base64_audio,
    pcm16_to_wav_bytes,
    play_audio_data,
)
from lingopop.services.assistant import AIServiceError, create_assistant
from lingopop.services.flashcards import EmptyDeckError, FlashcardSession
from lingopop.services.languages import LANGUAGES, resolve_native, resolve_target
from lingopop.services.notebook import NotebookBrowser, NotebookTab, StorySelectionError
from lingopop.services.settings import SettingsStore, resolve_languages
from lingopop.services.storage import NotebookRepository
from lingopop.ui.console import ConsoleUI
from lingopop.ui.modern import ModernUI, build_card_panel, build_result_panel
from lingopop.web import create_app


LOGGER = logging.getLogger("lingopop.cli")


cli = typer.Typer(add_completion=False, help="LingoPop: your fun AI pocket dictionary")


def _prepare_logging(storage_root: Path) -> None:
    configure_logging(handlers=build_default_handlers(storage_root))


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the notebook presentation style.",
    show_default=True,
)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None, open_browser=True)


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


def _fail(message: str, error: Optional[BaseException] = None) -> None:
    typer.echo(message, err=True)
    if error is not None:
        raise typer.Exit(code=1) from error
    raise typer.Exit(code=1)


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="LINGOPOP_ROOT_PATH",
    ),
    open_browser: bool = typer.Option(True, "--open-browser/--no-browser", help="Open a browser tab"),
) -> None:
    """Run the FastAPI-powered web experience."""

    app_config = initialize_app()
    _prepare_logging(app_config.storage_root)

    repository = NotebookRepository(app_config)
    normalized_root = _normalize_root_path(root_path)
    app = create_app(repository, config=app_config, root_path=normalized_root)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server

    if open_browser:
        browser_host = host
        if not browser_host or browser_host in {"0.0.0.0", "::"}:
            browser_host = "127.0.0.1"
        url = f"http://{browser_host}:{port}{normalized_root}/"

        def _open_browser_later() -> None:
            time.sleep(1.0)
            if not webbrowser.open(url, new=2, autoraise=True):
                LOGGER.info("Open %s in your browser to start learning", url)

        threading.Thread(target=_open_browser_later, daemon=True).start()

    server.run()


@cli.command()
def languages() -> None:
    """List the languages you can pick."""

    for language in LANGUAGES:
        typer.echo(f"{language.code}  {language.flag} {language.name}")


@cli.command()
def start(
    native: str = typer.Option(..., "--native", "-n", help="Code of the language you speak"),
    target: str = typer.Option(..., "--target", "-t", help="Code of the language to learn"),
) -> None:
    """Choose the language pair used by lookups and stories."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    settings = SettingsStore(config).start(native, target)
    native_lang, target_lang = resolve_languages(settings)
    typer.echo(f"I speak {native_lang.label}; I want to learn {target_lang.label}.")


@cli.command()
def lookup(
    word: str = typer.Argument(..., help="Word or short phrase to explain"),
    native: Optional[str] = typer.Option(None, "--native", "-n", help="Override the native language code"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Override the target language code"),
    save: bool = typer.Option(False, "--save", help="Save the result to the notebook"),
    image: bool = typer.Option(False, "--image", help="Also generate an illustration"),
) -> None:
    """Explain *word* with examples and, for verbs, conjugations."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    default_native, default_target = resolve_languages(SettingsStore(config).load())
    native_lang = resolve_native(native) if native else default_native
    target_lang = resolve_target(target) if target else default_target

    assistant = create_assistant(config)
    try:
        result = assistant.explain_word(word, native_lang, target_lang)
        if image:
            result.image_url = assistant.illustrate_word(result.word)
    except (AIServiceError, ValueError) as error:
        _fail(f"Lookup failed: {error}", error)

    repository = NotebookRepository(config)
    saved = repository.find_item(result.word, target_lang.name)
    if save and saved is None:
        saved = repository.add_item(result, target_lang.name)
        typer.echo(f"Saved '{saved.word}' to your {target_lang.name} notebook.")

    Console().print(build_result_panel(result, saved_id=saved.id if saved else None))


@cli.command("save-sentence")
def save_sentence(
    original: str = typer.Argument(..., help="Sentence in the language you are learning"),
    translated: str = typer.Argument("", help="Translation in your native language"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Override the target language code"),
) -> None:
    """Save a sentence to the notebook."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    _, default_target = resolve_languages(SettingsStore(config).load())
    target_lang = resolve_target(target) if target else default_target
    sentence = NotebookRepository(config).add_sentence(original, translated, target_lang.name)
    typer.echo(f"Saved sentence {sentence.id} to your {target_lang.name} notebook.")


@cli.command()
def notebook(
    style: UIStyle = style_option,
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Target language name"),
    tab: NotebookTab = typer.Option(NotebookTab.WORDS, "--tab", help="Which list to show"),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Select words, weave stories and play sentences"
    ),
) -> None:
    """Show saved words or sentences for one language."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    native_lang, _ = resolve_languages(SettingsStore(config).load())
    repository = NotebookRepository(config)
    browser = NotebookBrowser.from_repository(repository, native_lang_name=native_lang.name)
    if language:
        browser.select_language(language)
    browser.select_tab(tab)

    if style is UIStyle.MODERN:
        ui = ModernUI(browser)
    else:
        ui = ConsoleUI(browser)

    if not interactive:
        ui.run()
        return
    _notebook_loop(browser, repository, config, ui)


_NOTEBOOK_PROMPT = (
    "[l]anguage NAME, [t]ab, [x] ID select, [w]eave, [c]lose story, "
    "[p]lay ID, [d]elete ID, [q]uit"
)


def _notebook_loop(browser: NotebookBrowser, repository: NotebookRepository, config, ui) -> None:
    assistant = None

    def _assistant():
        nonlocal assistant
        if assistant is None:
            assistant = create_assistant(config)
        return assistant

    while True:
        ui.run()
        command, _, argument = typer.prompt(_NOTEBOOK_PROMPT, default="q").strip().partition(" ")
        command = command.lower()[:1]
        argument = argument.strip()

        if command == "q":
            break
        if command == "l":
            if argument in browser.available_languages:
                browser.select_language(argument)
            else:
                typer.echo(f"No saved entries for '{argument}'.")
        elif command == "t":
            other = NotebookTab.SENTENCES if browser.active_tab is NotebookTab.WORDS else NotebookTab.WORDS
            browser.select_tab(other)
        elif command == "x" and argument:
            selected = browser.toggle_selection(argument)
            typer.echo(f"{'Selected' if selected else 'Deselected'} {argument}.")
        elif command == "w":
            if not browser.can_weave:
                typer.echo("Select at least 2 words to weave a story.")
                continue
            try:
                browser.weave_story(_assistant())
            except (StorySelectionError, AIServiceError) as error:
                typer.echo(f"Story generation failed: {error}", err=True)
        elif command == "c":
            browser.close_story()
        elif command == "p" and argument:
            sentence = next((s for s in browser.filtered_sentences if s.id == argument), None)
            if sentence is None:
                typer.echo(f"No sentence {argument} in {browser.active_lang}.")
                continue
            browser.play_sentence(
                sentence.id,
                sentence.original,
                lambda text: _speak_word(_assistant(), text, blocking=True),
            )
        elif command == "d" and argument:
            if repository.remove_item(argument):
                browser.forget_item(argument)
            elif repository.remove_sentence(argument):
                browser.forget_sentence(argument)
            else:
                typer.echo(f"Nothing saved with id {argument}.")

    typer.echo("Closed notebook.")


@cli.command()
def forget(
    item_id: str = typer.Argument(..., help="Id of the saved word or sentence"),
) -> None:
    """Delete a saved word or sentence."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    repository = NotebookRepository(config)
    if repository.remove_item(item_id):
        typer.echo(f"Deleted word {item_id}.")
    elif repository.remove_sentence(item_id):
        typer.echo(f"Deleted sentence {item_id}.")
    else:
        _fail(f"Nothing saved with id {item_id}.")


@cli.command()
def story(
    item_ids: List[str] = typer.Argument(..., help="Ids of at least two saved words"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Target language name"),
) -> None:
    """Weave a short story from saved words."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    repository = NotebookRepository(config)
    native_lang, _ = resolve_languages(SettingsStore(config).load())
    browser = NotebookBrowser.from_repository(repository, native_lang_name=native_lang.name)

    if language is None:
        first = repository.get_item(item_ids[0])
        if first is None:
            _fail(f"Nothing saved with id {item_ids[0]}.")
        language = first.target_lang
    browser.select_language(language)
    for item_id in dict.fromkeys(item_ids):
        browser.toggle_selection(item_id)

    try:
        text = browser.weave_story(create_assistant(config))
    except StorySelectionError as error:
        _fail(str(error), error)
    except AIServiceError as error:
        _fail(f"Story generation failed: {error}", error)

    Console().print(ModernUI.build_story_panel(text))


@cli.command()
def speak(
    text: str = typer.Argument(..., help="Text to read aloud"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        resolve_path=True,
        help="Write a WAV file instead of playing the audio",
    ),
) -> None:
    """Read *text* aloud with the speech model."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    try:
        encoded = create_assistant(config).generate_speech(text)
    except AIServiceError as error:
        _fail(f"Speech synthesis failed: {error}", error)
    if not encoded:
        _fail("No audio was generated.")

    if output is not None:
        try:
            wav = pcm16_to_wav_bytes(decode_base64_audio(encoded))
        except AudioDecodeError as error:
            _fail(f"Speech synthesis failed: {error}", error)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(wav)
        typer.echo(f"Speech saved to: {output}")
        return

    if not play_audio_data(encoded, blocking=True):
        _fail("Could not play audio; try --output to save a WAV file instead.")


def _speak_word(assistant, text: str, *, blocking: bool = False) -> None:
    try:
        encoded = assistant.generate_speech(text)
    except AIServiceError as error:
        typer.echo(f"Speech synthesis failed: {error}", err=True)
        return
    if encoded:
        play_audio_data(encoded, blocking=blocking)


@cli.command()
def review(
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Target language name"),
) -> None:
    """Review saved words as flashcards."""

    config = initialize_app()
    _prepare_logging(config.storage_root)
    items = NotebookRepository(config).iter_items(language)
    try:
        session = FlashcardSession(items)
    except EmptyDeckError as error:
        _fail(str(error), error)

    console = Console()
    assistant = None
    while True:
        console.print(build_card_panel(session))
        if session.finished:
            choice = typer.prompt("[r]estart or [q]uit", default="q").strip().lower()
            if choice.startswith("r"):
                session.restart()
                continue
            break

        choice = typer.prompt("[f]lip, [n]ext, [p]revious, [s]peak, [q]uit", default="f")
        choice = choice.strip().lower()[:1]
        if choice == "f":
            session.flip()
        elif choice == "n":
            session.next()
        elif choice == "p":
            session.previous()
        elif choice == "s":
            if assistant is None:
                assistant = create_assistant(config)
            session.speak_current(lambda word: _speak_word(assistant, word))
        elif choice == "q":
            break

    typer.echo("Back to notebook.")


if __name__ == "__main__":
    cli()
