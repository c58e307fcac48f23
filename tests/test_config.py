from pathlib import Path

import lingopop.config as config_module
from lingopop.config import AppConfig, load_config


def test_storage_root_falls_back_when_preferred_is_unusable(
    tmp_path: Path, monkeypatch
) -> None:
    home_dir = tmp_path / "home"
    monkeypatch.setattr(config_module.Path, "home", lambda: home_dir)

    preferred_storage = tmp_path / "storage"
    preferred_storage.write_text("not a directory", encoding="utf-8")

    config = AppConfig.from_mapping(
        {"storage_root": "storage", "database_file": "storage/notebook.db"},
        base_path=tmp_path,
    )

    expected_storage = (home_dir / ".lingopop" / "storage").resolve()
    assert config.storage_root == expected_storage
    assert config.database_file == (expected_storage / "notebook.db").resolve()
    assert config.settings_file == (expected_storage / "settings.json").resolve()


def test_model_settings_default_when_missing(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {"storage_root": "storage", "database_file": "storage/notebook.db"},
        base_path=tmp_path,
    )

    assert config.text_model == config_module.DEFAULT_TEXT_MODEL
    assert config.speech_voice == "Kore"
    assert config.api_key_env == "GEMINI_API_KEY"


def test_api_key_is_read_from_configured_variable(tmp_path: Path, monkeypatch) -> None:
    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/notebook.db",
            "api_key_env": "LINGOPOP_TEST_KEY",
        },
        base_path=tmp_path,
    )

    monkeypatch.delenv("LINGOPOP_TEST_KEY", raising=False)
    assert config.api_key is None

    monkeypatch.setenv("LINGOPOP_TEST_KEY", "  secret  ")
    assert config.api_key == "secret"


def test_load_config_resolves_paths_relative_to_project(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.json"
    config_file.write_text(
        '{"storage_root": "storage", "database_file": "storage/notebook.db",'
        ' "text_model": "custom-model"}',
        encoding="utf-8",
    )

    config = load_config(config_file)

    project_root = Path(config_module.__file__).resolve().parent.parent
    assert config.text_model == "custom-model"
    assert config.database_file.name == "notebook.db"
    assert config.storage_root in {
        (project_root / "storage").resolve(),
        (Path.home() / ".lingopop" / "storage").resolve(),
    }
