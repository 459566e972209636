"""Centralized helpers for reading and writing application settings.

This module wraps ``QSettings`` access so group names and key strings live in
one place.  Command line options override whatever is stored here for a
single run; nothing about captured samples is ever persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QSettings

SETTINGS_GROUP = "CaptureTool"


@dataclass
class CaptureSettings:
    """Chart appearance and timing preferences."""

    chart_width: int = 600
    chart_height: int = 300
    stroke: str = "red"
    show_points: bool = False
    y_scale: str = "linear"
    # deferral before a chart is built, lets the plot area finish its layout
    construction_delay_ms: int = 100
    # 0 disables the deadline
    ready_timeout_ms: int = 5000
    channels_timeout_ms: int = 0
    block_type: str = "u16"


@dataclass
class WindowState:
    """Geometry of the main window."""

    geometry: Optional[bytes] = None


def _to_bool(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if value is None:
        return default
    return bool(value)


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ---- Capture settings -----------------------------------------------------


def load_capture_settings(
    defaults: CaptureSettings | None = None,
) -> CaptureSettings:
    base = defaults or CaptureSettings()
    settings = QSettings()
    settings.beginGroup(SETTINGS_GROUP)
    settings.beginGroup("Capture")
    try:
        data = CaptureSettings(
            chart_width=_to_int(settings.value("chart_width"), base.chart_width),
            chart_height=_to_int(settings.value("chart_height"), base.chart_height),
            stroke=str(settings.value("stroke", base.stroke)),
            show_points=_to_bool(settings.value("show_points"), base.show_points),
            y_scale=str(settings.value("y_scale", base.y_scale)),
            construction_delay_ms=_to_int(
                settings.value("construction_delay_ms"), base.construction_delay_ms
            ),
            ready_timeout_ms=_to_int(
                settings.value("ready_timeout_ms"), base.ready_timeout_ms
            ),
            channels_timeout_ms=_to_int(
                settings.value("channels_timeout_ms"), base.channels_timeout_ms
            ),
            block_type=str(settings.value("block_type", base.block_type)),
        )
    finally:
        settings.endGroup()
        settings.endGroup()
    return data


def save_capture_settings(data: CaptureSettings) -> None:
    settings = QSettings()
    settings.beginGroup(SETTINGS_GROUP)
    settings.beginGroup("Capture")
    try:
        settings.setValue("chart_width", data.chart_width)
        settings.setValue("chart_height", data.chart_height)
        settings.setValue("stroke", data.stroke)
        settings.setValue("show_points", data.show_points)
        settings.setValue("y_scale", data.y_scale)
        settings.setValue("construction_delay_ms", data.construction_delay_ms)
        settings.setValue("ready_timeout_ms", data.ready_timeout_ms)
        settings.setValue("channels_timeout_ms", data.channels_timeout_ms)
        settings.setValue("block_type", data.block_type)
    finally:
        settings.endGroup()
        settings.endGroup()
        settings.sync()


# ---- Main window state ----------------------------------------------------


def load_window_state() -> WindowState:
    settings = QSettings()
    settings.beginGroup(SETTINGS_GROUP)
    try:
        geometry = settings.value("geometry", None)
    finally:
        settings.endGroup()
    return WindowState(geometry=geometry if geometry else None)


def save_window_state(state: WindowState) -> None:
    settings = QSettings()
    settings.beginGroup(SETTINGS_GROUP)
    try:
        if state.geometry is not None:
            settings.setValue("geometry", state.geometry)
    finally:
        settings.endGroup()
        settings.sync()
