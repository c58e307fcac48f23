from __future__ import annotations

import io
import wave

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from lingopop.services.assistant import AIServiceError
from lingopop.services.storage import NotebookRepository
from lingopop.web import create_app

from conftest import make_result


def _client(temp_config, fake_assistant, root_path: str | None = None) -> TestClient:
    repository = NotebookRepository(temp_config)
    app = create_app(repository, config=temp_config, assistant=fake_assistant, root_path=root_path)
    return TestClient(app)


def _save_words(temp_config, language: str, *words: str) -> list[str]:
    repository = NotebookRepository(temp_config)
    return [repository.add_item(make_result(word), language).id for word in words]


def test_index_renders_with_root_path(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant, root_path="/lingo")

    response = client.get("/")

    assert response.status_code == 200
    assert "__LINGOPOP_ROOT__" not in response.text
    assert response.headers.get("x-request-id")


def test_languages_and_settings(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    languages = client.get("/api/languages").json()["languages"]
    assert languages[0] == {"code": "en", "name": "English", "flag": "🇺🇸"}

    initial = client.get("/api/settings").json()
    assert initial["settings"]["started"] is False
    assert initial["target"]["name"] == "Spanish"

    updated = client.put("/api/settings", json={"native_lang": "de", "target_lang": "fr"}).json()
    assert updated["settings"]["started"] is True
    assert updated["settings"]["mode"] == "SEARCH"
    assert updated["native"]["name"] == "German"
    assert client.get("/api/settings").json()["target"]["code"] == "fr"


def test_lookup_uses_settings_and_reports_saved_id(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    response = client.post("/api/lookup", json={"word": "hablar", "include_image": True})

    assert response.status_code == 200
    body = response.json()
    assert body["target_lang"] == "Spanish"
    assert body["saved_item_id"] is None
    assert body["result"]["conjugations"]["infinitive"] == "hablar"
    assert body["result"]["image_url"].startswith("data:image/png;base64,")
    assert fake_assistant.calls[0] == ("explain_word", "hablar", "en", "es")

    saved = client.post(
        "/api/notebook/words", json={"result": body["result"], "target_lang": "Spanish"}
    )
    assert saved.status_code == 201

    again = client.post("/api/lookup", json={"word": "hablar"}).json()
    assert again["saved_item_id"] == saved.json()["item"]["id"]


def test_lookup_validation_and_upstream_errors(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    assert client.post("/api/lookup", json={"word": "   "}).status_code == 400

    fake_assistant.error = AIServiceError("quota exceeded")
    response = client.post("/api/lookup", json={"word": "gato"})
    assert response.status_code == 502
    assert "quota exceeded" in response.json()["detail"]


def test_saving_the_same_word_twice_returns_existing(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)
    result = make_result("Gato").to_dict()

    first = client.post("/api/notebook/words", json={"result": result})
    second = client.post(
        "/api/notebook/words", json={"result": {**result, "word": "gato"}}
    )

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert first.json()["item"]["target_lang"] == "Spanish"
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["item"]["id"] == first.json()["item"]["id"]


def test_notebook_listing_and_deletion(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)
    assert client.get("/api/notebook").json()["empty"] is True

    (gato_id,) = _save_words(temp_config, "Spanish", "gato")
    _save_words(temp_config, "French", "chat")
    sentence = client.post(
        "/api/notebook/sentences",
        json={"original": " Bonjour ", "translated": "Hello", "target_lang": "French"},
    )
    assert sentence.status_code == 201
    sentence_id = sentence.json()["sentence"]["id"]

    notebook = client.get("/api/notebook", params={"language": "French", "tab": "sentences"}).json()
    assert notebook["languages"] == ["French", "Spanish"]
    assert notebook["active_language"] == "French"
    assert notebook["tab"] == "sentences"
    assert notebook["counts"] == {"words": 1, "sentences": 1}
    assert notebook["sentences"][0]["original"] == "Bonjour"

    assert client.get(f"/api/notebook/words/{gato_id}").json()["item"]["word"] == "gato"
    assert client.delete(f"/api/notebook/words/{gato_id}").status_code == 204
    assert client.delete(f"/api/notebook/words/{gato_id}").status_code == 404
    assert client.get(f"/api/notebook/words/{gato_id}").status_code == 404
    assert client.delete(f"/api/notebook/sentences/{sentence_id}").status_code == 204
    assert client.delete(f"/api/notebook/sentences/{sentence_id}").status_code == 404
    assert client.post("/api/notebook/sentences", json={"original": "  "}).status_code == 400


def test_story_requires_two_words_in_language(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)
    spanish = _save_words(temp_config, "Spanish", "gato", "perro")
    (french,) = _save_words(temp_config, "French", "chat")

    too_few = client.post("/api/story", json={"language": "Spanish", "item_ids": [spanish[0], french]})
    assert too_few.status_code == 400

    response = client.post("/api/story", json={"language": "Spanish", "item_ids": spanish})
    assert response.status_code == 200
    body = response.json()
    assert body["story"] == "Once upon a time: gato, perro"
    assert sorted(body["words"]) == ["gato", "perro"]


def test_speech_is_served_as_wav(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    response = client.post("/api/speech", json={"text": "Hola"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/wav"
    with wave.open(io.BytesIO(response.content), "rb") as handle:
        assert handle.getframerate() == 24_000
        assert handle.getnframes() == 4

    assert client.post("/api/speech", json={"text": " "}).status_code == 400
    fake_assistant.speech = None
    assert client.post("/api/speech", json={"text": "Hola"}).status_code == 502
    fake_assistant.speech = "%%%"
    assert client.post("/api/speech", json={"text": "Hola"}).status_code == 502


def test_chat_round_trip(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    response = client.post(
        "/api/chat",
        json={
            "result": make_result("gato").to_dict(),
            "history": [{"role": "user", "text": "Hi"}, {"role": "model", "text": "Hello"}],
            "message": "Is it masculine?",
        },
    )

    assert response.status_code == 200
    assert response.json()["message"] == {"role": "model", "text": "About gato: Is it masculine?"}
    assert fake_assistant.calls[-1] == ("chat", "gato", 2, "Is it masculine?", "en")


def test_flashcard_session_flow(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)
    assert client.post("/api/flashcards", json={}).status_code == 400

    _save_words(temp_config, "Spanish", "gato", "perro")
    started = client.post("/api/flashcards", json={"language": "Spanish"})
    assert started.status_code == 201
    session = started.json()
    session_id = session["session_id"]
    assert session["progress"] == "1 / 2"
    assert session["card"]["explanation"] is None

    flipped = client.post(f"/api/flashcards/{session_id}/flip").json()
    assert flipped["flipped"] is True
    assert flipped["card"]["explanation"].startswith("Meaning of")

    moved = client.post(f"/api/flashcards/{session_id}/next").json()
    assert moved["index"] == 1
    assert moved["flipped"] is False

    finished = client.post(f"/api/flashcards/{session_id}/next").json()
    assert finished["finished"] is True

    restarted = client.post(f"/api/flashcards/{session_id}/restart").json()
    assert restarted["index"] == 0
    assert restarted["finished"] is False

    assert client.get(f"/api/flashcards/{session_id}").json()["progress"] == "1 / 2"
    assert client.post(f"/api/flashcards/{session_id}/shuffle").status_code == 422
    assert client.get("/api/flashcards/missing").status_code == 404


def test_index_page_wires_notebook_and_flashcards(temp_config, fake_assistant) -> None:
    client = _client(temp_config, fake_assistant)

    page = client.get("/").text

    assert "Your notebook is empty. Save words or sentences to get started." in page
    assert 'id="weave" disabled' in page
    for path in ("/api/notebook?", "/api/story", "/api/flashcards", "/api/notebook/sentences"):
        assert path in page
    for action in ('"flip"', '"next"', '"previous"', '"restart"'):
        assert action in page
