import os
import sys
import threading

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import config
import logutil


def test_log_includes_scope_and_chunk_tag(capsys, monkeypatch):
    monkeypatch.setattr(config, "LOG_COLOR", False)
    monkeypatch.setattr(config, "LOG_LEVEL", "INFO")
    logutil.set_chunk((3, -4))
    try:
        logutil.log("MAPGEN", "hello")
    finally:
        logutil.set_chunk(None)
    out = capsys.readouterr().out
    assert out.startswith("[INFO c3,-4 ")
    assert "MAPGEN] hello" in out
    assert "\x1b[" not in out


def test_level_threshold(capsys, monkeypatch):
    monkeypatch.setattr(config, "LOG_LEVEL", "WARN")
    logutil.log("MAPGEN", "dropped")
    logutil.log("MAPGEN", "kept", level="ERROR")
    out = capsys.readouterr().out
    assert "dropped" not in out
    assert "kept" in out
    assert not logutil.enabled("MAPGEN", "INFO")


def test_chunk_scopes_follow_chunkgen_switch(monkeypatch):
    monkeypatch.setattr(config, "LOG_LEVEL", "DEBUG")
    monkeypatch.setattr(config, "LOG_CHUNKGEN", False)
    assert not logutil.enabled("CHUNK")
    assert logutil.enabled("CHUNK", "ERROR")
    assert logutil.enabled("MAPGEN")
    monkeypatch.setattr(config, "LOG_CHUNKGEN", True)
    assert logutil.enabled("DECOR", "DEBUG")


def test_error_lines_are_red(capsys, monkeypatch):
    monkeypatch.setattr(config, "LOG_COLOR", True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    logutil.log("CHUNK", "boom", level="ERROR")
    assert capsys.readouterr().out.startswith("\x1b[31m")


def test_chunk_tag_is_per_thread(monkeypatch):
    monkeypatch.setattr(config, "LOG_COLOR", False)
    monkeypatch.setattr(config, "LOG_LEVEL", "INFO")
    logutil.set_chunk((1, 1))
    seen = []

    def worker():
        seen.append(getattr(logutil._state, "chunk", None))

    t = threading.Thread(target=worker)
    t.start()
    t.join()
    logutil.set_chunk(None)
    assert seen == [None]
