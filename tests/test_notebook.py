import pytest

from lingopop.services.models import SavedItem, SavedSentence
from lingopop.services.notebook import NotebookBrowser, NotebookTab, StorySelectionError
from lingopop.services.storage import NotebookRepository

from conftest import make_result


def _item(item_id: str, word: str, language: str) -> SavedItem:
    return SavedItem.from_result(make_result(word), id=item_id, target_lang=language)


def _sentence(sentence_id: str, text: str, language: str) -> SavedSentence:
    return SavedSentence(
        id=sentence_id, original=text, translated="", target_lang=language, timestamp=0
    )


def _browser() -> NotebookBrowser:
    return NotebookBrowser(
        [_item("1", "gato", "Spanish"), _item("2", "chat", "French"), _item("3", "perro", "Spanish")],
        [_sentence("s1", "Guten Tag", "German"), _sentence("s2", "Hola", "Spanish")],
        native_lang_name="English",
    )


def test_languages_follow_first_seen_order() -> None:
    browser = _browser()

    assert browser.available_languages == ["Spanish", "French", "German"]
    assert browser.active_lang == "Spanish"
    assert [item.word for item in browser.filtered_words] == ["gato", "perro"]
    assert [sentence.original for sentence in browser.filtered_sentences] == ["Hola"]


def test_empty_notebook_has_no_active_language() -> None:
    browser = NotebookBrowser([], [], native_lang_name="English")

    assert browser.is_empty
    assert browser.active_lang is None
    assert browser.filtered_words == []


def test_switching_language_clears_selection() -> None:
    browser = _browser()
    assert browser.toggle_selection("1") is True
    assert browser.toggle_selection("3") is True
    assert browser.can_weave

    browser.select_language("German")
    browser.select_tab("sentences")

    assert browser.selected_ids == set()
    assert browser.active_tab is NotebookTab.SENTENCES
    assert browser.filtered_words == []
    assert [sentence.id for sentence in browser.filtered_sentences] == ["s1"]


def test_toggle_selection_twice_deselects() -> None:
    browser = _browser()

    assert browser.toggle_selection("1") is True
    assert browser.toggle_selection("1") is False
    assert not browser.can_weave


def test_weave_story_requires_two_words(fake_assistant) -> None:
    browser = _browser()
    browser.toggle_selection("1")

    with pytest.raises(StorySelectionError):
        browser.weave_story(fake_assistant)
    assert fake_assistant.calls == []


def test_weave_story_uses_selected_words(fake_assistant) -> None:
    browser = _browser()
    browser.toggle_selection("1")
    browser.toggle_selection("3")

    story = browser.weave_story(fake_assistant)

    assert story == "Once upon a time: gato, perro"
    assert browser.story == story
    assert browser.loading_story is False
    assert fake_assistant.calls == [("weave_story", ("gato", "perro"), "English")]

    browser.close_story()
    assert browser.story is None


def test_weave_story_resets_loading_flag_on_failure(fake_assistant) -> None:
    browser = _browser()
    browser.toggle_selection("1")
    browser.toggle_selection("3")
    fake_assistant.error = RuntimeError("boom")

    with pytest.raises(RuntimeError):
        browser.weave_story(fake_assistant)

    assert browser.loading_story is False
    assert browser.story is None


def test_play_sentence_ignores_overlapping_requests() -> None:
    browser = _browser()
    nested = []

    def _speak(text: str) -> None:
        nested.append(browser.play_sentence("s2", "Hola", lambda _: None))

    assert browser.play_sentence("s1", "Guten Tag", _speak) is True
    assert nested == [False]
    assert browser.playing_audio is None


def test_forget_item_drops_selection() -> None:
    browser = _browser()
    browser.toggle_selection("1")

    browser.forget_item("1")
    browser.forget_sentence("s2")

    assert "1" not in browser.selected_ids
    assert [item.id for item in browser.filtered_words] == ["3"]
    assert browser.filtered_sentences == []


def test_from_repository_reads_saved_entries(temp_config) -> None:
    repository = NotebookRepository(temp_config)
    repository.add_item(make_result("sol"), "Spanish")
    repository.add_sentence("Il pleut", "It rains", "French")

    browser = NotebookBrowser.from_repository(repository, native_lang_name="English")

    assert browser.available_languages == ["Spanish", "French"]
