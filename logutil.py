import os
import threading
import multiprocessing
import config

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}
_CHUNK_SCOPES = ("CHUNK", "COLUMNS", "DECOR")

# Chunk tags are per thread so pooled workers do not overwrite each other.
_state = threading.local()


def set_chunk(chunk_pos):
    _state.chunk = chunk_pos


def enabled(scope, level="INFO"):
    threshold = _LEVELS.get(str(getattr(config, "LOG_LEVEL", "INFO")).upper(), 20)
    if _LEVELS.get(level, 20) < threshold:
        return False
    if scope in _CHUNK_SCOPES and level in ("DEBUG", "INFO"):
        return bool(getattr(config, "LOG_CHUNKGEN", True))
    return True


def log(scope, msg, level="INFO"):
    if not enabled(scope, level):
        return
    pid = os.getpid()
    proc = multiprocessing.current_process().name
    thread = threading.current_thread().name
    chunk = getattr(_state, "chunk", None)
    chunk_tag = f" c{chunk[0]},{chunk[1]}" if chunk is not None else ""
    text = f"[{level}{chunk_tag} pid{pid} proc{proc} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        if level == "ERROR":
            text = f"\x1b[31m{text}\x1b[0m"
        elif proc == "MainProcess" and thread != "MainThread":
            # Generator worker thread.
            text = f"\x1b[32m{text}\x1b[0m"
        elif proc != "MainProcess":
            text = f"\x1b[33m{text}\x1b[0m"
    print(text)
