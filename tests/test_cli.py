"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tc_analyzer.cli import main


@pytest.fixture
def runner(monkeypatch) -> CliRunner:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("MOCK_GEMINI_API", "true")
    return CliRunner()


@pytest.fixture
def questionnaire_file(tmp_path: Path, questionnaire: dict) -> Path:
    file = tmp_path / "questionnaire.json"
    file.write_text(json.dumps(questionnaire), encoding="utf-8")
    return file


class TestProfileCommand:
    def test_json_output(self, runner, questionnaire_file) -> None:
        result = runner.invoke(main, ["profile", str(questionnaire_file), "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["computed_profile"]["risk_tolerance"]["overall"] == 5.3
        assert data["insights"]["explanation_style"]["style"] == "balanced_educational"

    def test_rich_output(self, runner, questionnaire_file) -> None:
        result = runner.invoke(main, ["profile", str(questionnaire_file)])
        assert result.exit_code == 0, result.output
        assert "Overall" in result.output

    def test_invalid_questionnaire(self, runner, tmp_path, make_questionnaire) -> None:
        file = tmp_path / "bad.json"
        file.write_text(json.dumps(make_questionnaire(**{"demographics.occupation": "astronaut"})), encoding="utf-8")
        result = runner.invoke(main, ["profile", str(file)])
        assert result.exit_code == 1

    def test_store_without_database(self, runner, questionnaire_file, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        result = runner.invoke(main, ["profile", str(questionnaire_file), "--store"])
        assert result.exit_code == 1


class TestAnalyzeCommand:
    def test_json_output(self, runner, terms_file) -> None:
        result = runner.invoke(main, ["analyze", str(terms_file), "--output", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["risk_level"] == "high"
        assert data["fallback"] is False
        assert data["cached"] is False

    def test_personalized_and_saved(self, runner, terms_file, questionnaire_file, tmp_path) -> None:
        out = tmp_path / "result.json"
        result = runner.invoke(
            main,
            ["analyze", str(terms_file), "--profile", str(questionnaire_file), "--save", str(out), "--mock"],
        )
        assert result.exit_code == 0, result.output
        saved = json.loads(out.read_text(encoding="utf-8"))
        assert saved["personalization_metadata"]["analysis_personalized"] is True
        assert "Overall Risk Score" in result.output

    def test_multi_pass(self, runner, terms_file) -> None:
        result = runner.invoke(main, ["analyze", str(terms_file), "--multi-pass", "-o", "json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["passes_completed"] == 5

    def test_shared_cache_without_database(self, runner, terms_file, monkeypatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        result = runner.invoke(main, ["analyze", str(terms_file), "--shared-cache"])
        assert result.exit_code == 1

    def test_text_too_short(self, runner, tmp_path) -> None:
        file = tmp_path / "short.txt"
        file.write_text("Too short.", encoding="utf-8")
        result = runner.invoke(main, ["analyze", str(file)])
        assert result.exit_code == 1

    def test_unsupported_file(self, runner, tmp_path) -> None:
        file = tmp_path / "terms.docx"
        file.write_bytes(b"PK")
        result = runner.invoke(main, ["analyze", str(file)])
        assert result.exit_code == 1


class TestClauseCommand:
    def test_json_output(self, runner) -> None:
        result = runner.invoke(main, ["clause", "We may share your data with any third party.", "-o", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["clause_type"] == "privacy"

    def test_rich_output(self, runner) -> None:
        result = runner.invoke(main, ["clause", "We may terminate your account at any time."])
        assert result.exit_code == 0, result.output
        assert "Clause risk" in result.output
