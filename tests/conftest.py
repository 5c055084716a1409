"""Shared fixtures: offscreen Qt, isolated settings, sample images."""
from __future__ import annotations

import os
import sys

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from PIL import Image
from PyQt6.QtWidgets import QApplication

import settings
from settings import SettingsManager


@pytest.fixture(scope="session")
def qapp():
    """Session-wide QApplication (required before any QPixmap/QWidget)."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings singleton at a throwaway directory."""
    manager = SettingsManager(settings_dir=tmp_path / "config")
    monkeypatch.setattr(settings, "_settings_manager", manager)
    return manager


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a solid-color image to tmp_path and returning its path."""
    def _make(name="scalp.png", size=(200, 100), color=(0, 0, 0)):
        path = tmp_path / name
        mode = "RGB" if len(color) == 3 else "RGBA"
        Image.new(mode, size, color).save(path)
        return str(path)
    return _make
