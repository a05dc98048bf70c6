"""Unit tests for CLI command handling."""

from __future__ import annotations

from cli.main import EXIT_CANCELLED, EXIT_FAILED, EXIT_OK, main
from core.types import (
    RT_SERIES_FEED,
    STATE_DAILY_FEED,
    IngestionRun,
    PassOutcome,
    PassResult,
    PassState,
)
from store.metric_store import InfluxMetricStore
from tests.fixture_paths import fixture_path


def _capture_run(monkeypatch, results):
    calls = []

    def fake_run_ingestion(settings, store, feeds):
        calls.append((settings, store, feeds))
        return results

    monkeypatch.setattr("cli.main.run_ingestion", fake_run_ingestion)
    return calls


def test_cli_missing_config_file_fails_before_ingesting(tmp_path, monkeypatch, capsys) -> None:
    """An unreadable connection file should exit 1 without running a pass."""
    calls = _capture_run(monkeypatch, [])

    exit_code = main(["--config", str(tmp_path / "absent.json")])

    assert exit_code == EXIT_FAILED and calls == []
    assert "absent.json" in capsys.readouterr().err


def test_cli_dry_run_skips_store_and_prints_summary(monkeypatch, capsys) -> None:
    """Dry runs should pass no store and print one row per feed."""
    results = [
        PassResult(STATE_DAILY_FEED, PassOutcome.SUCCESS, IngestionRun(seen=3, admitted=2)),
        PassResult(RT_SERIES_FEED, PassOutcome.SUCCESS, IngestionRun(seen=4, admitted=3)),
    ]
    calls = _capture_run(monkeypatch, results)

    exit_code = main(["--dry-run", "--config", "does-not-matter.json"])
    output_lines = capsys.readouterr().out.strip().splitlines()

    assert exit_code == EXIT_OK
    settings, store, _ = calls[0]
    assert settings.dry_run is True and store is None
    assert output_lines[0].split("\t")[:3] == ["state-daily", "success", "seen=3"]
    assert output_lines[1].startswith("rt\tsuccess")


def test_cli_builds_influx_store_and_selects_feeds(monkeypatch) -> None:
    """A valid connection file should bind an InfluxDB store for the chosen feeds."""
    calls = _capture_run(monkeypatch, [PassResult(RT_SERIES_FEED, PassOutcome.SUCCESS)])

    exit_code = main(["--config", str(fixture_path("config/valid.json")), "--feed", "rt"])

    _, store, feeds = calls[0]
    assert exit_code == EXIT_OK
    assert isinstance(store, InfluxMetricStore)
    assert feeds == (RT_SERIES_FEED,)


def test_cli_returns_failure_when_any_pass_fails(monkeypatch, capsys) -> None:
    """A single fatal pass should make the process exit non-zero."""
    results = [
        PassResult(
            STATE_DAILY_FEED,
            PassOutcome.FATAL,
            IngestionRun(),
            last_state=PassState.FETCHING,
            error="HTTP 500",
        ),
        PassResult(RT_SERIES_FEED, PassOutcome.SUCCESS),
    ]
    _capture_run(monkeypatch, results)

    exit_code = main(["--dry-run"])

    assert exit_code == EXIT_FAILED
    assert "state-daily: HTTP 500" in capsys.readouterr().err


def test_cli_interrupt_exits_with_cancelled_code(monkeypatch) -> None:
    """Ctrl-C during a run should map to exit code 130."""

    def interrupted_run(settings, store, feeds):
        raise KeyboardInterrupt

    monkeypatch.setattr("cli.main.run_ingestion", interrupted_run)

    assert main(["--dry-run"]) == EXIT_CANCELLED
