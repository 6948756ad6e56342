"""Tests for the command-line entry point."""

from datetime import datetime

import pytest

import config
from main import build_parser, main
from storage import JsonSessionStore
from tests.conftest import make_session


@pytest.fixture
def data_dirs(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "DATA_DIR", tmp_path / "sessions")
    monkeypatch.setattr(config, "REPORTS_DIR", tmp_path / "reports")
    monkeypatch.setattr(config, "SETTINGS_FILE", tmp_path / "settings.json")
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)
    return tmp_path


def _store_session(user_id="local"):
    data = make_session(datetime.now().replace(microsecond=0), focus=88, user_id=user_id).to_dict()
    data.pop("id")
    return JsonSessionStore().create_session(data)


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_report_needs_a_target():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["report"])


def test_stats_with_no_sessions(data_dirs, capsys):
    assert main(["stats"]) == 0

    out = capsys.readouterr().out
    assert "Sessions: 0" in out
    assert "Streak: 0 day(s), best 0" in out


def test_stats_reports_stored_sessions(data_dirs, capsys):
    _store_session()
    _store_session(user_id="someone-else")

    assert main(["stats", "--period", "all"]) == 0

    out = capsys.readouterr().out
    assert "Sessions: 1 (1 completed, 100%)" in out
    assert "Average focus: 88%" in out
    assert "Streak: 1 day(s), best 1" in out


def test_weekly_report_written(data_dirs, capsys):
    _store_session()

    assert main(["report", "--weekly"]) == 0

    assert list((data_dirs / "reports").glob("weekly_local_*.pdf"))


def test_session_report_written(data_dirs, capsys):
    session_id = _store_session()

    assert main(["report", "--session", session_id]) == 0

    assert (data_dirs / "reports" / f"session_{session_id}.pdf").exists()
    assert "Insight (heuristic)" in capsys.readouterr().out


def test_missing_session_report(data_dirs, capsys):
    assert main(["report", "--session", "nope"]) == 1
    assert "not found" in capsys.readouterr().out
