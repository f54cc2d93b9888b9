from __future__ import annotations

import os
from typing import Iterable

from .audio import AUDIO_EXTENSIONS, TEXT_EXTENSIONS
from .models import FileHandle, ItemKind

MAX_FILES_PER_ADD = 50

# Batch mode → (item kind, accepted extensions)
MODES: dict[str, tuple[ItemKind, tuple[str, ...]]] = {
    "tts": (ItemKind.TEXT, TEXT_EXTENSIONS),
    "transcription": (ItemKind.AUDIO, AUDIO_EXTENSIONS),
}


class IngestRejected(Exception):
    """A file drop was refused as a whole (e.g. too many files)."""
    pass


def _mode(mode: str) -> tuple[ItemKind, tuple[str, ...]]:
    try:
        return MODES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown batch mode {mode!r}; expected one of {', '.join(MODES)}"
        ) from None


def mode_kind(mode: str) -> ItemKind:
    return _mode(mode)[0]


def handle_from_path(path: str) -> FileHandle:
    """Build a :class:`FileHandle` for a file on disk."""
    return FileHandle(name=os.path.basename(path),
                      size=os.path.getsize(path),
                      path=path)


def filter_files(
    files: Iterable[FileHandle],
    mode: str,
    max_files: int = MAX_FILES_PER_ADD,
) -> tuple[list[FileHandle], list[FileHandle]]:
    """Split *files* into ``(accepted, rejected)`` by the mode's allow-list.

    Raises :class:`IngestRejected` when more than *max_files* are offered
    at once; nothing is accepted in that case.
    """
    _kind, allowed = _mode(mode)
    files = list(files)
    if len(files) > max_files:
        raise IngestRejected(
            f"Too many files: {len(files)} (at most {max_files} per add)"
        )
    accepted = [f for f in files if f.extension in allowed]
    rejected = [f for f in files if f.extension not in allowed]
    return accepted, rejected
