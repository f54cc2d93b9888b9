"""Player debug tracing, switched on with ``VW_DEBUG=1``.

``dbg()`` lines go to the ``voicewavegui.trace`` logger, which gets its
own stderr handler the first time tracing is found enabled.  Each line
carries a millisecond timestamp and the class (or module) that called
``dbg``.  ``timed()`` wraps a block and traces how long it took::

    with timed("decode"):
        frames, sr = decode_frames(data)
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Iterator

ENV_VAR = "VW_DEBUG"

_log = logging.getLogger("voicewavegui.trace")
_configured = False


def enabled() -> bool:
    return os.environ.get(ENV_VAR, "").strip().lower() in ("1", "true", "yes")


def _configure() -> None:
    global _configured
    _configured = True
    if not enabled():
        _log.disabled = True
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "[%(asctime)s.%(msecs)03d %(origin)s] %(message)s", datefmt="%H:%M:%S"))
    _log.addHandler(handler)
    _log.setLevel(logging.DEBUG)
    _log.propagate = False


def _origin(depth: int) -> str:
    frame = sys._getframe(depth + 1)
    owner = frame.f_locals.get("self")
    if owner is not None:
        return type(owner).__name__
    return frame.f_globals.get("__name__", "?").rsplit(".", 1)[-1]


def dbg(msg: str) -> None:
    if not _configured:
        _configure()
    if _log.disabled:
        return
    _log.debug(msg, extra={"origin": _origin(1)})


@contextmanager
def timed(label: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        if not _configured:
            _configure()
        if not _log.disabled:
            elapsed = (time.perf_counter() - start) * 1000
            _log.debug("%s: %.1f ms", label, elapsed,
                       extra={"origin": _origin(2)})
