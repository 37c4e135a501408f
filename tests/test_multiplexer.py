"""
Tests for the output multiplexer
"""

import io
import subprocess

from gq.shared.multiplexer import (
    COLORS,
    RESET,
    OutputMultiplexer,
    format_line,
    pump,
)
from gq.shared.time import wall_clock


NOW = 1_700_000_000.0


def test_format_line_plain():
    line = format_line("API", "GET /health 200", now=NOW, use_color=False)
    assert line == f"[{wall_clock(NOW)}] [API] GET /health 200\n"


def test_format_line_uses_service_color():
    line = format_line("API", "hello", now=NOW, use_color=True)
    assert line.startswith(COLORS["green"]), "API lines are green"
    assert RESET in line
    assert line.endswith(" hello\n")


def test_format_line_honours_no_color(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    line = format_line("ENGINE1", "fill", now=NOW)
    assert "\033[" not in line, "NO_COLOR disables escape codes"


def test_pump_tags_every_line_in_order(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    source = io.BytesIO(b"first\r\nsecond\nthird")
    sink = io.StringIO()

    count = pump(source, "ENGINE1", sink)

    lines = sink.getvalue().splitlines()
    assert count == 3
    assert [line.split("] ", 2)[-1] for line in lines] == ["first", "second", "third"]
    assert all("[ENGINE1]" in line for line in lines)


def test_pump_replaces_undecodable_bytes(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    sink = io.StringIO()
    pump(io.BytesIO(b"price \xff\n"), "API", sink)
    assert "price �" in sink.getvalue()


def test_attach_forwards_child_output(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    sink = io.StringIO()
    mux = OutputMultiplexer(sink)
    process = subprocess.Popen(["sh", "-c", "echo one; echo two"],
                               stdout=subprocess.PIPE, stderr=subprocess.STDOUT)

    mux.attach(process, "FRONTEND")
    process.wait(timeout=10)
    mux.join(timeout=10)

    lines = sink.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("[FRONTEND] one")
    assert lines[1].endswith("[FRONTEND] two")


def test_spawn_forwarder_tags_output_after_handoff(capfd, monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    mux = OutputMultiplexer()
    process = subprocess.Popen(["sh", "-c", "echo routed"], stdout=subprocess.PIPE)

    forwarder = mux.spawn_forwarder(process, "API")
    process.wait(timeout=10)
    assert forwarder.wait(timeout=30) == 0, "Forwarder exits cleanly at EOF"

    out = capfd.readouterr().out
    assert "[API] routed" in out
