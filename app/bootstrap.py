from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple, TYPE_CHECKING

from infra.settings_store import CaptureSettings
from model.channel import ChannelMap, derive_topic, load_channel_map
from model.rpc_meta import RPC_TYPES

if TYPE_CHECKING:
    # Static-only imports to satisfy type checkers and linters
    from PySide6.QtWidgets import QApplication
    from controllers.capture_service import CaptureService
    from gui.main_window import CaptureWindow

logger = logging.getLogger("CaptureTool")

DEFAULT_ROOT = "tcp://localhost"
DEFAULT_ROUTE = "/"
DEFAULT_CHANNEL = "vector"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="capture-tool",
        description="Trigger sensor captures and plot each channel's buffer.",
    )
    parser.add_argument("channels", nargs="*", help="signal identifiers to offer")
    parser.add_argument(
        "-r", dest="root", default=DEFAULT_ROOT,
        help=(
            f"sensor root (default {DEFAULT_ROOT}); "
            "not used yet, captures come from the simulated device"
        ),
    )
    parser.add_argument(
        "-s", dest="route", default=DEFAULT_ROUTE,
        help="sensor path in the sensor tree (default /); not used yet",
    )
    parser.add_argument(
        "-t", dest="block_type", choices=RPC_TYPES, default=None,
        help="request type of the capture block index",
    )
    parser.add_argument(
        "--channels-file", type=Path, default=None,
        help="YAML channel map with optional topic overrides",
    )
    parser.add_argument("--delay-ms", type=int, default=None, help="chart construction delay")
    parser.add_argument(
        "--ready-timeout-ms", type=int, default=None,
        help="how long a batch may wait for its chart (0 waits forever)",
    )
    parser.add_argument(
        "--channels-timeout-ms", type=int, default=None,
        help="how long to wait for the channel list (0 waits forever)",
    )
    parser.add_argument(
        "--strict-topics", action="store_true",
        help="refuse channel lists in which two signals share a topic",
    )
    parser.add_argument("-d", dest="debug", action="store_true", help="debug logging")
    return parser


def apply_overrides(settings: CaptureSettings, args: argparse.Namespace) -> CaptureSettings:
    if args.block_type is not None:
        settings.block_type = args.block_type
    if args.delay_ms is not None:
        settings.construction_delay_ms = max(0, args.delay_ms)
    if args.ready_timeout_ms is not None:
        settings.ready_timeout_ms = max(0, args.ready_timeout_ms)
    if args.channels_timeout_ms is not None:
        settings.channels_timeout_ms = max(0, args.channels_timeout_ms)
    return settings


def resolve_channels(args: argparse.Namespace) -> Tuple[List[str], ChannelMap]:
    """Channel names from the command line, a channel map, or the default."""
    path = args.channels_file
    if path is None:
        from infra.app_paths import default_channel_map

        path = default_channel_map()
    channel_map = load_channel_map(path) if path is not None else ChannelMap()
    names = list(args.channels) or list(channel_map.names) or [DEFAULT_CHANNEL]
    return names, channel_map


def create_application(
    argv: Optional[list[str]] = None,
) -> Tuple["QApplication", "CaptureWindow", "CaptureService"]:
    """Create the ``QApplication``, the capture host and the chart window.

    PySide6 is imported inside the function so that importing this module
    (for ``build_parser`` in tests, say) has no Qt side effects.
    """
    _argv = list(argv if argv is not None else sys.argv)
    args = build_parser().parse_args(_argv[1:])

    from infra.logging_config import initialize_app_environment

    initialize_app_environment(debug=args.debug)

    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(_argv[:1])
    app.setApplicationName("Capture Tool")
    app.setApplicationVersion("1.0")
    app.setOrganizationName("CaptureTool")

    from controllers.capture_service import CaptureService
    from controllers.device_rpc import SimulatedDevice
    from gui.main_window import CaptureWindow
    from infra.settings_store import load_capture_settings
    from views.event_bus import HostBridge

    settings = apply_overrides(load_capture_settings(), args)
    names, channel_map = resolve_channels(args)
    topic_for = channel_map.topic_for if channel_map.topics else derive_topic
    logger.info(
        "Sensor %s%s, channels %s, block type %s",
        args.root, args.route, names, settings.block_type,
    )

    bridge = HostBridge()
    # TODO: add a TCP transport for the sensor proxy at args.root; until then
    # every run talks to the simulated device
    device = SimulatedDevice(channels=names)
    service = CaptureService(
        bridge, device, names, block_type=settings.block_type, topic_for=topic_for
    )
    window = CaptureWindow(
        bridge, settings, topic_for=topic_for, strict_topics=args.strict_topics
    )
    bridge.setParent(window)
    return app, window, service


def run(argv: Optional[list[str]] = None) -> int:
    """Run the full application. Returns the QApplication exit code."""
    app, window, service = create_application(argv)
    window.show()
    window.start()
    try:
        code = app.exec()
    finally:
        service.stop()
    return code or window.exit_code
