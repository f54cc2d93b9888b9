"""Color palette and dark-theme application."""

from __future__ import annotations

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

COLORS = {
    "bg": "#1e1e1e",
    "bg_alt": "#252525",
    "accent": "#3a3a3a",
    "text": "#dddddd",
    "dim": "#888888",
    "highlight": "#2a6db5",
    "error": "#ff4444",
}

STYLESHEET = """
    QMainWindow { background-color: #1e1e1e; }
    QMenuBar { background-color: #252525; color: #dddddd; }
    QMenuBar::item:selected { background-color: #3a3a3a; }
    QMenu { background-color: #2d2d2d; color: #dddddd; border: 1px solid #555; }
    QMenu::item:selected { background-color: #2a6db5; }
    QPushButton { background-color: #3a3a3a; color: #dddddd; border: 1px solid #555; padding: 4px 12px; border-radius: 2px; }
    QPushButton:hover { background-color: #4a4a4a; }
    QPushButton:pressed { background-color: #2a6db5; }
    QPushButton:disabled { color: #666666; background-color: #2d2d2d; }
    QLabel { color: #dddddd; }
    QStatusBar { background-color: #2d2d2d; color: #888888; }
    QSlider::groove:horizontal { background: #3a3a3a; height: 4px; border-radius: 2px; }
    QSlider::handle:horizontal { background: #dddddd; width: 10px; margin: -4px 0; border-radius: 5px; }
"""


def apply_dark_theme(window) -> None:
    """Apply the dark palette and stylesheet to the application and window."""
    app = QApplication.instance()

    palette = QPalette()
    text = QColor(COLORS["text"])
    palette.setColor(QPalette.Window, QColor(COLORS["bg"]))
    palette.setColor(QPalette.WindowText, text)
    palette.setColor(QPalette.Base, QColor(COLORS["bg_alt"]))
    palette.setColor(QPalette.AlternateBase, QColor(COLORS["accent"]))
    palette.setColor(QPalette.Text, text)
    palette.setColor(QPalette.Button, QColor(COLORS["accent"]))
    palette.setColor(QPalette.ButtonText, text)
    palette.setColor(QPalette.Highlight, QColor(COLORS["highlight"]))
    palette.setColor(QPalette.HighlightedText, QColor("#ffffff"))
    palette.setColor(QPalette.Disabled, QPalette.ButtonText, QColor("#666666"))

    app.setPalette(palette)
    window.setStyleSheet(STYLESHEET)
