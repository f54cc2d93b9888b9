import os
import sys
import asyncio
import argparse
import logging

try:
    from rich.console import Console
    from rich.table import Table
    from rich.panel import Panel
    from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn
    from rich.logging import RichHandler
    from rich import box
except ImportError:
    print("Error: The 'rich' library is required for the CLI but not installed.", file=sys.stderr)
    print("Please install it with: pip install voicewave[cli] (or uv sync --extra cli)", file=sys.stderr)
    sys.exit(1)

from voicewavelib import __version__
from voicewavelib.audio import DecodeError, FetchError, format_time
from voicewavelib.batch import (
    BatchPipeline, BatchProcessingFailed, DirectorySink, load_delegate,
)
from voicewavelib.config import (
    ConfigError, default_config, load_preset, merge_configs, validate_config,
)
from voicewavelib.events import EXPORT_ITEM, ITEM_STATUS, EventBus
from voicewavelib.extractor import WaveformExtractor
from voicewavelib.ingest import MODES, IngestRejected, handle_from_path
from voicewavelib.models import AudioSource, ItemStatus
from voicewavelib.rendering import progress_fraction, render_text
from voicewavelib.store import BatchItemStore

console = Console()

_STATUS_STYLE = {
    ItemStatus.PENDING: "dim",
    ItemStatus.PROCESSING: "yellow",
    ItemStatus.COMPLETED: "green",
    ItemStatus.FAILED: "red",
}


def positive_int(value):
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return ivalue


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="VoiceWave",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--version", action="version",
                        version=f"voicewave {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--preset", type=str, default=None,
                        help="JSON preset file overriding the default config")
    sub = parser.add_subparsers(dest="command", required=True)

    # Waveform preview
    wf = sub.add_parser("waveform", help="Print the amplitude envelope of an audio file or URL",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    wf.add_argument("source", type=str, help="Audio file path or http(s) URL")
    wf.add_argument("--blocks", type=positive_int, default=None,
                    help="Number of envelope blocks (default: envelope_blocks from config)")
    wf.add_argument("--at", type=float, default=0.0,
                    help="Playback position in seconds used to colour the played part")
    wf.add_argument("--width", type=positive_int, default=80,
                    help="Preview width in characters")

    # Batch run
    bt = sub.add_parser("batch", help="Run files through a processing function",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    bt.add_argument("files", nargs="*", default=[], help="Input files")
    bt.add_argument("--mode", choices=sorted(MODES), default="tts",
                    help="Batch mode; decides which file types are accepted")
    bt.add_argument("--text", action="append", default=[],
                    help="Add a free-text item (repeatable)")
    bt.add_argument("--delegate", type=str, required=True,
                    help="Processing function as 'module:function'")
    bt.add_argument("--export", type=str, default=None, dest="export_dir",
                    help="Directory to export completed results into")
    return parser.parse_args(argv)


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
    )


def build_config(args) -> dict:
    config = default_config()
    if args.preset:
        config = merge_configs(config, load_preset(args.preset))
    if getattr(args, "blocks", None):
        config["envelope_blocks"] = args.blocks
    validate_config(config)
    return config


# ---------------------------------------------------------------------------
# waveform
# ---------------------------------------------------------------------------

def cmd_waveform(args, config) -> int:
    extractor = WaveformExtractor(config["envelope_blocks"],
                                  fetch_timeout=config["fetch_timeout"])
    source = AudioSource.from_location(args.source)
    try:
        with console.status(f"Decoding {source.name}..."):
            envelope = extractor.extract(source)
    except (FetchError, DecodeError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1

    progress = progress_fraction(args.at, envelope.duration)
    text, played = render_text(envelope, progress, args.width)
    body = (f"[{_rich_color(config['played_color'])}]{text[:played]}[/]"
            f"[{_rich_color(config['unplayed_color'])}]{text[played:]}[/]")
    position = min(max(args.at, 0.0), envelope.duration)
    console.print(Panel(
        body,
        title=source.name,
        subtitle=f"{format_time(position)} / {format_time(envelope.duration)}",
        box=box.ROUNDED,
    ))
    console.print(f"[dim]{len(envelope)} blocks, {envelope.samplerate} Hz, "
                  f"peak {float(envelope.values.max()):.4f}[/]")
    return 0


def _rich_color(value: str) -> str:
    return "#" + value.lstrip("#")[:6]


# ---------------------------------------------------------------------------
# batch
# ---------------------------------------------------------------------------

def cmd_batch(args, config) -> int:
    try:
        delegate = load_delegate(args.delegate)
    except (ImportError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1

    store = BatchItemStore(args.mode, config["max_batch_files"])
    missing = [f for f in args.files if not os.path.isfile(f)]
    for f in missing:
        console.print(f"[yellow]Skipping missing file:[/] {f}")
    try:
        _added, rejected = store.add_files(
            handle_from_path(f) for f in args.files if f not in missing)
    except IngestRejected as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1
    for f in rejected:
        console.print(f"[yellow]Skipping {f.name}:[/] not accepted in {args.mode} mode")
    for text in args.text:
        store.add_text(text)

    event_bus = EventBus()
    pipeline = BatchPipeline(store, config, event_bus)
    if not pipeline.can_run():
        console.print("[red]Nothing to process.[/]")
        return 1

    ok = asyncio.run(_run_batch(pipeline, event_bus, delegate, args.export_dir))
    print_items(store)
    return 0 if ok else 2


async def _run_batch(pipeline: BatchPipeline, event_bus: EventBus,
                     delegate, export_dir) -> bool:
    total = len(pipeline.store.pending())
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task_id = progress.add_task("[cyan]Processing...", total=total)

        def on_item_status(item, **_):
            if item.status in (ItemStatus.COMPLETED, ItemStatus.FAILED):
                progress.advance(task_id)

        unsubscribe = event_bus.subscribe(ITEM_STATUS, on_item_status)
        try:
            await pipeline.run(delegate)
        except BatchProcessingFailed as e:
            console.print(f"[bold red]{e}[/] ({len(e.item_ids)} item(s))")
            logging.getLogger(__name__).debug("Delegate error", exc_info=e.__cause__)
            return False
        finally:
            unsubscribe()

    if export_dir is None:
        return True

    completed = [i for i in pipeline.store.completed() if i.result]
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task_id = progress.add_task("[cyan]Exporting...", total=len(completed))

        def on_export(item, ok, **_):
            progress.advance(task_id)
            if not ok:
                progress.console.print(f"[yellow]Export failed:[/] {item.label}")

        unsubscribe = event_bus.subscribe(EXPORT_ITEM, on_export)
        try:
            exported = await pipeline.export_completed(DirectorySink(export_dir))
        finally:
            unsubscribe()
    console.print(f"[dim]Exported {len(exported)} result(s) to {export_dir}[/]")
    return True


def print_items(store: BatchItemStore):
    table = Table(title="Batch Items", box=box.SIMPLE_HEAVY)
    table.add_column("Item", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Result")

    for item in store:
        size = item.source_file.size_mb if item.source_file else ""
        style = _STATUS_STYLE[item.status]
        detail = item.result if item.status == ItemStatus.COMPLETED else (item.error or "")
        table.add_row(item.label or "[dim](empty)[/]", size,
                      f"[{style}]{item.status.value.upper()}[/]", detail)
    console.print(table)

    counts = store.counts()
    console.print(
        f"[green]{counts[ItemStatus.COMPLETED]} completed[/], "
        f"[red]{counts[ItemStatus.FAILED]} failed[/], "
        f"{counts[ItemStatus.PENDING]} pending"
    )


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    try:
        config = build_config(args)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/] {e}")
        return 1

    if args.command == "waveform":
        return cmd_waveform(args, config)
    return cmd_batch(args, config)


if __name__ == "__main__":
    sys.exit(main())
