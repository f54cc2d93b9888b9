def main():
    """Start the player (imports Qt and sounddevice on first use)."""
    from .mainwindow import main as _main
    _main()


__all__ = ["main"]
