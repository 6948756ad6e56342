"""Tests for session coaching insights."""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

import config
from ai.summariser import (
    SessionInsightGenerator,
    baseline_focus,
    heuristic_insight,
)
from tests.conftest import make_session


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)


def _summary(focus, baseline, distractions=0, task=""):
    return {
        "duration_min": 25,
        "focus_pct": focus,
        "distractions": distractions,
        "task": task,
        "baseline_focus": baseline,
    }


def _openai_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def test_heuristic_below_baseline():
    text = heuristic_insight(_summary(55, 80, task="thesis"))

    assert text.startswith("Below your recent average (55.00% vs 80%)")
    assert "thesis" in text


def test_heuristic_many_distractions():
    text = heuristic_insight(_summary(78, 80, distractions=7))

    assert text.startswith("Good effort, but 7 distractions")


def test_heuristic_above_baseline():
    text = heuristic_insight(_summary(95, 80))

    assert text.startswith("Great result (95.00% vs 80% baseline)")


def test_heuristic_solid():
    text = heuristic_insight(_summary(82, 80))

    assert text.startswith("Solid focus.")
    assert "87%" in text


def test_baseline_uses_latest_ten_sessions():
    start = datetime(2024, 1, 1, 9)
    sessions = [make_session(start + timedelta(days=i), focus=10) for i in range(5)]
    sessions += [make_session(start + timedelta(days=10 + i), focus=80) for i in range(10)]

    assert baseline_focus(sessions) == 80
    assert baseline_focus([]) == 0


def test_falls_back_to_heuristic_without_keys():
    generator = SessionInsightGenerator()
    session = make_session(datetime(2024, 1, 1, 9), focus=82)

    result = generator.generate_insight(session, [make_session(datetime(2023, 12, 31, 9), focus=80)])

    assert result["source"] == "heuristic"
    assert result["success"] is True
    assert result["insight"].startswith("Solid focus.")


def test_uses_openai_when_available():
    client = MagicMock()
    client.chat.completions.create.return_value = _openai_response("  Keep the phone in another room.  ")
    generator = SessionInsightGenerator(openai_client=client)

    result = generator.generate_insight(make_session(datetime(2024, 1, 1, 9)))

    assert result == {"insight": "Keep the phone in another room.", "source": "openai", "success": True}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == config.OPENAI_MODEL
    assert "Focus score: 80.0%" in kwargs["messages"][1]["content"]


def test_openai_failure_retries_then_uses_gemini():
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("rate limited")
    gemini = MagicMock()
    gemini.generate_content.return_value = SimpleNamespace(text="Try a 20 minute block.")
    sleeps = []
    generator = SessionInsightGenerator(openai_client=client, gemini_model=gemini, sleep=sleeps.append)

    result = generator.generate_insight(make_session(datetime(2024, 1, 1, 9)))

    assert result["source"] == "gemini"
    assert result["insight"] == "Try a 20 minute block."
    assert client.chat.completions.create.call_count == config.OPENAI_MAX_RETRIES
    assert sleeps == [1, 2]


def test_gemini_failure_falls_back_to_heuristic():
    gemini = MagicMock()
    gemini.generate_content.side_effect = RuntimeError("unavailable")
    generator = SessionInsightGenerator(gemini_model=gemini)

    result = generator.generate_insight(make_session(datetime(2024, 1, 1, 9)))

    assert result["source"] == "heuristic"


def test_empty_openai_reply_moves_on():
    client = MagicMock()
    client.chat.completions.create.return_value = _openai_response("")
    generator = SessionInsightGenerator(openai_client=client)

    result = generator.generate_insight(make_session(datetime(2024, 1, 1, 9)))

    assert result["source"] == "heuristic"
    assert client.chat.completions.create.call_count == 1
