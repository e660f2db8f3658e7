"""Tests for the colored logging helpers."""

from navgrid.logging_utils import (
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_WARNING,
    Color,
    colored,
    log_debug,
    log_info,
    log_warning,
)


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.setenv("NAVGRID_NO_COLOR", "1")
    assert colored("plain", Color.RED) == "plain"

    monkeypatch.delenv("NAVGRID_NO_COLOR")
    wrapped = colored("loud", Color.RED, bold=True)
    assert wrapped.startswith(Color.BOLD.value + Color.RED.value)
    assert wrapped.endswith(Color.RESET.value)


def test_log_level_threshold(monkeypatch, capsys):
    monkeypatch.setenv("NAVGRID_NO_COLOR", "1")
    monkeypatch.setenv("NAVGRID_LOG_LEVEL", "WARNING")

    log_debug("search details")
    log_info("loop finished")
    log_warning("trace inconclusive")

    out = capsys.readouterr().out
    assert "search details" not in out
    assert "loop finished" not in out
    assert f"{LOG_TAG_WARNING} trace inconclusive" in out


def test_debug_level_shows_planning_output(monkeypatch, capsys):
    monkeypatch.setenv("NAVGRID_NO_COLOR", "1")
    monkeypatch.setenv("NAVGRID_LOG_LEVEL", "debug")

    log_debug("expanded 9 tiles")

    out = capsys.readouterr().out
    assert f"{LOG_TAG_DETERMINISTIC} expanded 9 tiles" in out
