"""
VoiceWave GUI — PySide6 waveform player.

Usage:
    python voicewave-gui.py [FILE_OR_URL]
    uv run python voicewave-gui.py

Requires: PySide6 and sounddevice (install via `uv pip install -e .[gui]`)
"""

from voicewavegui import main

if __name__ == "__main__":
    main()
