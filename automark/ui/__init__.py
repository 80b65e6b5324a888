"""
UI Module - User Interface Components
=====================================
Contains the PyQt6 UI components for the AutoMark application.

Architecture:
- widgets.py: Reusable UI components
- main_window.py: Main application window
"""

from .main_window import MainWindow
from .widgets import NoWheelSlider, PathPicker, ResultLogWidget

__all__ = [
    "MainWindow",
    "NoWheelSlider",
    "PathPicker",
    "ResultLogWidget",
]
