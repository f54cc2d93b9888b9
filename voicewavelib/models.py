from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import numpy as np


class ItemKind(Enum):
    TEXT = "text"
    AUDIO = "audio"


class ItemStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class AudioSource:
    """Reference to a single audio asset.

    Exactly one of ``location`` (URL or filesystem path) or ``data``
    (already loaded bytes) is set.  Sources are immutable; assigning a new
    one to an extractor or player invalidates everything derived from the
    previous one.
    """
    location: str | None = None
    data: bytes | None = field(default=None, repr=False)
    name: str = ""

    def __post_init__(self):
        if (self.location is None) == (self.data is None):
            raise ValueError("AudioSource needs exactly one of location or data")

    @classmethod
    def from_location(cls, location: str) -> AudioSource:
        return cls(location=location, name=location.rsplit("/", 1)[-1])

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "") -> AudioSource:
        return cls(data=bytes(data), name=name)

    @property
    def is_remote(self) -> bool:
        return self.location is not None and self.location.lower().startswith(
            ("http://", "https://"))


@dataclass
class AmplitudeEnvelope:
    """Fixed-resolution loudness summary of a decoded waveform.

    Attributes:
        values:     Mean absolute amplitude per block, read-only.
        duration:   Length of the decoded audio in seconds.
        samplerate: Sample rate of the decoded audio.
    """
    values: np.ndarray
    duration: float = 0.0
    samplerate: int = 0

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=np.float64)
        self.values.setflags(write=False)

    @classmethod
    def empty(cls) -> AmplitudeEnvelope:
        return cls(np.zeros(0, dtype=np.float64))

    @property
    def is_empty(self) -> bool:
        return self.values.size == 0

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class PlaybackPosition:
    current_time: float = 0.0
    duration: float = 0.0
    is_playing: bool = False

    @property
    def progress(self) -> float:
        """Played fraction in [0, 1]; 0 for an unknown/zero duration."""
        if self.duration <= 0:
            return 0.0
        return min(max(self.current_time / self.duration, 0.0), 1.0)


@dataclass(frozen=True)
class FileHandle:
    """An ingested file: display name, size in bytes, and where it lives."""
    name: str
    size: int = 0
    path: str | None = None

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return f".{ext.lower()}" if dot else ""

    @property
    def size_mb(self) -> str:
        return f"{self.size / 1024 / 1024:.2f} MB"


@dataclass
class BatchItem:
    id: str
    kind: ItemKind
    content: str = ""
    source_file: FileHandle | None = None
    status: ItemStatus = ItemStatus.PENDING
    result: str | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def label(self) -> str:
        """What the item list shows: file name, else the text itself."""
        if self.source_file is not None:
            return self.source_file.name
        return self.content

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()
