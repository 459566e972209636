import numpy as np
import pytest
from PySide6.QtCore import Qt

from controllers.capture_service import CaptureService
from controllers.device_rpc import SimulatedDevice
from gui.main_window import CaptureWindow
from infra.settings_store import CaptureSettings


@pytest.fixture
def app_parts(qtbot, bridge):
    settings = CaptureSettings(construction_delay_ms=20, ready_timeout_ms=2000)
    device = SimulatedDevice(["vector", "therm.raw"], samples=64, blocksize=32)
    service = CaptureService(
        bridge, device, device.channels, reply_delay_ms=10, threaded=False
    )
    win = CaptureWindow(bridge, settings, enable_dialogs=False)
    qtbot.addWidget(win)
    yield win, device
    service.stop()


def test_buttons_and_charts_follow_channel_list(qtbot, app_parts):
    win, _device = app_parts
    win.show()
    with qtbot.waitSignal(win.session.registry.channels_received, timeout=2000):
        win.start()

    for name in ("vector", "therm.raw"):
        button = win.trigger_button(name)
        assert button is not None
        assert button.text() == name
    qtbot.waitUntil(
        lambda: win.session.chart("vector") is not None
        and win.session.chart("therm.raw") is not None,
        timeout=2000,
    )
    assert "2 channel(s)" in win.status_label.text()


def test_clicking_trigger_plots_the_capture(qtbot, app_parts):
    win, device = app_parts
    win.show()
    with qtbot.waitSignal(win.session.registry.channels_received, timeout=2000):
        win.start()

    with qtbot.waitSignal(win.session.ingestion.batch_rendered, timeout=3000) as blocker:
        qtbot.mouseClick(win.trigger_button("therm.raw"), Qt.LeftButton)
    assert blocker.args == ["therm.raw", 64]

    chart = win.session.chart("therm.raw")
    x, y = chart.buffer.x, chart.buffer.y
    np.testing.assert_array_equal(x, np.arange(64.0))
    np.testing.assert_allclose(y, device.capture_values("therm.raw"))
    assert len(win.session.chart("vector").buffer) == 0
    assert "therm.raw: 64 samples" in win.status_label.text()


def test_repeated_clicks_redraw_each_time(qtbot, app_parts):
    win, _device = app_parts
    win.show()
    with qtbot.waitSignal(win.session.registry.channels_received, timeout=2000):
        win.start()
    button = win.trigger_button("vector")
    for _ in range(2):
        with qtbot.waitSignal(win.session.ingestion.batch_rendered, timeout=3000):
            qtbot.mouseClick(button, Qt.LeftButton)
    assert win.session.chart("vector").redraw_count == 2


def test_close_tears_session_down(qtbot, app_parts, bridge):
    win, _device = app_parts
    with qtbot.waitSignal(win.session.registry.channels_received, timeout=2000):
        win.start()
    win.close()
    assert bridge.subscriber_count("vector") == 0
    assert win.session.lifecycle.identifiers == []


def test_rejected_channel_list_is_shown(qtbot, bridge):
    settings = CaptureSettings(construction_delay_ms=20, ready_timeout_ms=0)
    device = SimulatedDevice(["temp.a", "temp.b"], samples=16, blocksize=16)
    service = CaptureService(bridge, device, device.channels, reply_delay_ms=10, threaded=False)
    win = CaptureWindow(bridge, settings, strict_topics=True, enable_dialogs=False)
    qtbot.addWidget(win)
    try:
        with qtbot.waitSignal(win.session.registry.channels_rejected, timeout=2000):
            win.start()
        assert win.status_label.text().startswith("Channel list rejected")
        assert win.trigger_button("temp.a") is None
    finally:
        service.stop()
