"""
settings.py

Persistent settings management for TrichoMark.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/trichomark/settings.toml
    - macOS: ~/Library/Application Support/trichomark/settings.toml
    - Linux: ~/.config/trichomark/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import tomli_w

APP_NAME = "trichomark"

log = logging.getLogger(__name__)

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasZoomSettings:
    """Zoom settings.

    Defaults:
        min: 0.2
        max: 5.0
        step: 0.1
        wheel_factor: 1.15
    """
    min: float = 0.2             # Default: 0.2 (20%)
    max: float = 5.0             # Default: 5.0 (500%)
    step: float = 0.1            # Default: 0.1 per slider tick
    wheel_factor: float = 1.15   # Default: 1.15 (15% per scroll step)


@dataclass
class CanvasBrushSettings:
    """Brush (marker radius) settings, in image pixels.

    Defaults:
        default: 5
        min: 1
        max: 20
    """
    default: int = 5   # Default: 5 pixels
    min: int = 1       # Default: 1 pixel
    max: int = 20      # Default: 20 pixels


@dataclass
class CanvasSettings:
    """All canvas-related settings."""
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)
    brush: CanvasBrushSettings = field(default_factory=CanvasBrushSettings)


# =============================================================================
# Marker Settings
# =============================================================================

@dataclass
class MarkerSettings:
    """Marker drawing settings, shared by the live canvas and the export.

    Defaults:
        fill_opacity: 0.7
        stroke_color: "#ffffff"
        stroke_opacity: 0.8
        stroke_width: 1.0
        preview_opacity: 0.25
    """
    fill_opacity: float = 0.7        # Default: 70%
    stroke_color: str = "#ffffff"    # Default: white
    stroke_opacity: float = 0.8      # Default: 80%
    stroke_width: float = 1.0        # Default: 1 pixel
    preview_opacity: float = 0.25    # Default: 25% (brush preview fill)


# =============================================================================
# Report Panel Settings
# =============================================================================

@dataclass
class ReportSettings:
    """Layout of the report panel drawn on exported images.

    Defaults:
        padding: 20
        line_height: 28
        font_size: 22
        box_width: 430
        background: "#1f2937"
        background_opacity: 0.85
        text_color: "#f3f4f6"
        font_family: "sans-serif"
    """
    padding: int = 20                    # Default: 20 pixels (margin and inner padding)
    line_height: int = 28                # Default: 28 pixels
    font_size: int = 22                  # Default: 22 pixels
    box_width: int = 430                 # Default: 430 pixels
    background: str = "#1f2937"          # Default: gray-800
    background_opacity: float = 0.85     # Default: 85%
    text_color: str = "#f3f4f6"          # Default: gray-100
    font_family: str = "sans-serif"      # Default: "sans-serif"


# =============================================================================
# Gemini Settings
# =============================================================================

@dataclass
class GeminiSettings:
    """AI detector settings.

    Defaults:
        model: "gemini-2.5-flash"
        api_key_env: "GOOGLE_API_KEY"
        default_radius: 5.0
        replace_existing: True
    """
    model: str = "gemini-2.5-flash"      # Default: "gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"  # Default: "GOOGLE_API_KEY"
    default_radius: float = 5.0          # Default: radius used when the model omits one
    replace_existing: bool = True        # Default: detections replace current annotations


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        theme: The UI theme name (must match a key in styles.STYLES).
        export_dir: Default directory for exported reports.
        canvas: Canvas-related settings.
        markers: Marker drawing settings.
        report: Report panel layout.
        gemini: AI detector settings.
    """
    # UI Settings
    theme: str = "Dark"  # Default: "Dark"

    # Export directory (empty = directory of the loaded image)
    export_dir: str = ""

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    markers: MarkerSettings = field(default_factory=MarkerSettings)
    report: ReportSettings = field(default_factory=ReportSettings)
    gemini: GeminiSettings = field(default_factory=GeminiSettings)


def _update_dataclass(target: Any, values: Dict[str, Any]) -> None:
    """Copy known keys from *values* onto dataclass *target*.

    Values whose type does not match the default's type are ignored so a
    hand-edited file cannot put a string where a number is expected.
    """
    if not isinstance(values, dict):
        return
    for f in fields(target):
        if f.name not in values:
            continue
        current = getattr(target, f.name)
        new = values[f.name]
        if isinstance(current, bool):
            ok = isinstance(new, bool)
        elif isinstance(current, (int, float)):
            ok = isinstance(new, (int, float)) and not isinstance(new, bool)
            if ok and isinstance(current, float):
                new = float(new)
        else:
            ok = isinstance(new, type(current))
        if ok:
            setattr(target, f.name, new)
        else:
            log.warning("Ignoring setting %s=%r (wrong type)", f.name, new)


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in fields(obj)}


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Optional explicit directory (used by tests).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            log.warning("Could not read %s (%s); using defaults", self.settings_file, e)
            return AppSettings()

        return self._parse_toml(data)

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # General section
        general = data.get("general", {})
        if isinstance(general, dict):
            settings.theme = general.get("theme", settings.theme)
            settings.export_dir = general.get("export_dir", settings.export_dir)

        # Canvas section
        canvas = data.get("canvas", {})
        if isinstance(canvas, dict):
            _update_dataclass(settings.canvas.zoom, canvas.get("zoom", {}))
            _update_dataclass(settings.canvas.brush, canvas.get("brush", {}))

        _update_dataclass(settings.markers, data.get("markers", {}))
        _update_dataclass(settings.report, data.get("report", {}))
        _update_dataclass(settings.gemini, data.get("gemini", {}))

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)
        data = self._to_toml_dict()
        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "theme": s.theme,
                "export_dir": s.export_dir,
            },
            "canvas": {
                "zoom": _dataclass_to_dict(s.canvas.zoom),
                "brush": _dataclass_to_dict(s.canvas.brush),
            },
            "markers": _dataclass_to_dict(s.markers),
            "report": _dataclass_to_dict(s.report),
            "gemini": _dataclass_to_dict(s.gemini),
        }

    def get_export_dir(self, image_path: Optional[str] = None) -> Path:
        """Get the directory reports are exported to by default.

        Returns:
            The configured export directory, else the loaded image's
            directory, else ~/Documents/TrichoMark.
        """
        if self.settings.export_dir:
            return Path(self.settings.export_dir)
        if image_path:
            return Path(image_path).parent
        return Path.home() / "Documents" / "TrichoMark"

    def get_settings_path(self) -> Path:
        """Get the path to the settings file."""
        return self.settings_file
