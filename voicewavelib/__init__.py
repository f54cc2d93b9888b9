from ._version import __version__
from .models import (
    AudioSource,
    AmplitudeEnvelope,
    PlaybackPosition,
    FileHandle,
    BatchItem,
    ItemKind,
    ItemStatus,
)
from .audio import (
    compute_envelope,
    decode_audio,
    decode_frames,
    fetch_bytes,
    format_time,
    DecodeError,
    FetchError,
    AUDIO_EXTENSIONS,
    TEXT_EXTENSIONS,
)
from .extractor import WaveformExtractor
from .clock import PlaybackClock, MediaElement, MediaError
from .rendering import (
    Bar,
    BarRenderCtx,
    WaveformRenderer,
    bar_layout,
    progress_fraction,
    x_to_fraction,
    x_to_seconds,
    render_text,
)
from .ingest import IngestRejected, filter_files, handle_from_path
from .store import (
    BatchItemStore,
    StoreRejected,
    EditRejected,
    RemoveRejected,
    make_item,
)
from .batch import (
    BatchPipeline,
    BatchRun,
    BatchAlreadyRunning,
    BatchProcessingFailed,
    DirectorySink,
    load_delegate,
)
from .config import (
    default_config,
    merge_configs,
    validate_config,
    validate_config_fields,
    load_preset,
    save_preset,
    ConfigError,
    ConfigFieldError,
    ParamSpec,
    WAVEFORM_PARAMS,
    BATCH_PARAMS,
)
from .events import EventBus

__all__ = [
    "__version__",
    "AudioSource",
    "AmplitudeEnvelope",
    "PlaybackPosition",
    "FileHandle",
    "BatchItem",
    "ItemKind",
    "ItemStatus",
    "compute_envelope",
    "decode_audio",
    "decode_frames",
    "fetch_bytes",
    "format_time",
    "DecodeError",
    "FetchError",
    "AUDIO_EXTENSIONS",
    "TEXT_EXTENSIONS",
    "WaveformExtractor",
    "PlaybackClock",
    "MediaElement",
    "MediaError",
    "Bar",
    "BarRenderCtx",
    "WaveformRenderer",
    "bar_layout",
    "progress_fraction",
    "x_to_fraction",
    "x_to_seconds",
    "render_text",
    "IngestRejected",
    "filter_files",
    "handle_from_path",
    "BatchItemStore",
    "StoreRejected",
    "EditRejected",
    "RemoveRejected",
    "make_item",
    "BatchPipeline",
    "BatchRun",
    "BatchAlreadyRunning",
    "BatchProcessingFailed",
    "DirectorySink",
    "load_delegate",
    "default_config",
    "merge_configs",
    "validate_config",
    "validate_config_fields",
    "load_preset",
    "save_preset",
    "ConfigError",
    "ConfigFieldError",
    "ParamSpec",
    "WAVEFORM_PARAMS",
    "BATCH_PARAMS",
    "EventBus",
]
