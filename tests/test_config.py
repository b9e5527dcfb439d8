"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from calcengine.config import CONFIG_FILENAME, DEFAULT_CONFIG, load_config
from calcengine.defaults import grammar_from_config
from calcengine.fn_date import DEFAULT_DATE_FORMATS


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config == DEFAULT_CONFIG
        assert config["date_types"] is False
        assert config["log_dir"] is None

    def test_defaults_are_copies(self) -> None:
        config = load_config()
        config["date_formats"]["date"] = '"DD.MM.YYYY"'
        assert load_config()["date_formats"] == DEFAULT_DATE_FORMATS

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("language: fr\ndate_types: true\nextra_key: 1\n")
        config = load_config(path)
        assert config["language"] == "fr"
        assert config["date_types"] is True
        assert config["extra_key"] == 1

    def test_directory(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("language: en\n")
        assert load_config(tmp_path)["language"] == "en"

    def test_directory_without_file(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")
        assert load_config(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_logging_block_flattened(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("logging:\n  dir: logs\n  fsync: true\n")
        config = load_config(path)
        assert config["log_dir"] == "logs"
        assert config["logging_fsync"] is True
        assert "logging" not in config

    def test_date_formats_merged(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("date_formats:\n  date: DD/MM/YYYY\n")
        formats = load_config(path)["date_formats"]
        assert formats["date"] == "DD/MM/YYYY"
        assert formats["time"] == DEFAULT_DATE_FORMATS["time"]


class TestGrammarFromConfig:
    def test_language_and_translations(self) -> None:
        config = load_config()
        config.update(language="fr", translations={"mem": "m"})
        grammar = grammar_from_config(config)
        assert "racine" in grammar.functions
        assert "m" in grammar.literals

    def test_date_types(self) -> None:
        config = load_config()
        config.update(date_types=True, date_formats={"date": "DD/MM/YYYY"})
        grammar = grammar_from_config(config)
        assert [t.name for t in grammar.types if t.name in ("datetime", "date", "time")] == ["date"]
        assert "formatdate" in grammar.functions
