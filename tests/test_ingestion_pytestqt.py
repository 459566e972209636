import numpy as np
import pytest

from controllers.chart_lifecycle import ChartLifecycleController
from controllers.ingestion import IngestionPipeline
from infra.settings_store import CaptureSettings
from model.series import SeriesBuffer


@pytest.fixture
def pipeline(bridge):
    p = IngestionPipeline(bridge)
    yield p
    p.unsubscribe_all()


def _ready_entry(qtbot, plot_area, identifier="x"):
    ctrl = ChartLifecycleController(plot_area, CaptureSettings(construction_delay_ms=0))
    entry = ctrl.schedule(identifier)
    qtbot.waitUntil(lambda: entry.chart is not None, timeout=1000)
    return ctrl, entry


def test_batch_becomes_index_paired_series(qtbot, bridge, plot_area, pipeline):
    _ctrl, entry = _ready_entry(qtbot, plot_area, "x")
    pipeline.subscribe("x", "x", entry)
    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000) as blocker:
        bridge.publish("x", [3, 1, 4, 1, 5])
    assert blocker.args == ["x", 5]
    assert entry.chart.buffer.as_lists() == (
        [0.0, 1.0, 2.0, 3.0, 4.0],
        [3.0, 1.0, 4.0, 1.0, 5.0],
    )
    x, y = entry.chart.curve.getData()
    assert list(y) == [3.0, 1.0, 4.0, 1.0, 5.0]


def test_each_batch_replaces_previous_content(qtbot, bridge, plot_area, pipeline):
    _ctrl, entry = _ready_entry(qtbot, plot_area)
    entry.chart.set_buffer(
        SeriesBuffer(x=np.arange(10.0), y=np.full(10, 9.0)), redraw=True
    )
    pipeline.subscribe("x", "x", entry)
    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000):
        bridge.publish("x", [1.5, 2.5])
    assert entry.chart.buffer.as_lists() == ([0.0, 1.0], [1.5, 2.5])

    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000):
        bridge.publish("x", [])
    assert len(entry.chart.buffer) == 0


def test_same_batch_twice_is_idempotent(qtbot, bridge, plot_area, pipeline):
    _ctrl, entry = _ready_entry(qtbot, plot_area)
    pipeline.subscribe("x", "x", entry)
    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000):
        bridge.publish("x", [7, 8, 9])
    once = entry.chart.buffer.as_lists()
    redraws = entry.chart.redraw_count

    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000):
        bridge.publish("x", [7, 8, 9])
    assert entry.chart.buffer.as_lists() == once
    # not deduplicated: every delivery redraws exactly once
    assert entry.chart.redraw_count == redraws + 1


def test_batch_before_construction_is_deferred_not_dropped(qtbot, bridge, plot_area, pipeline):
    ctrl = ChartLifecycleController(plot_area, CaptureSettings(construction_delay_ms=200))
    entry = ctrl.schedule("x")
    pipeline.subscribe("x", "x", entry)
    rendered = []
    pipeline.batch_rendered.connect(lambda ident, n: rendered.append((ident, n, entry.chart)))

    bridge.publish("x", [1, 2, 3])
    qtbot.waitUntil(lambda: entry.gate.pending_count == 1, timeout=1000)
    assert entry.chart is None
    assert rendered == []

    qtbot.waitUntil(lambda: bool(rendered), timeout=2000)
    ident, count, chart = rendered[0]
    assert (ident, count) == ("x", 3)
    assert chart is not None
    assert chart.buffer.as_lists() == ([0.0, 1.0, 2.0], [1.0, 2.0, 3.0])


def test_invalid_batch_is_rejected_without_touching_chart(qtbot, bridge, plot_area, pipeline):
    _ctrl, entry = _ready_entry(qtbot, plot_area)
    pipeline.subscribe("x", "x", entry)
    with qtbot.waitSignal(pipeline.batch_rendered, timeout=1000):
        bridge.publish("x", [1, 2])
    with qtbot.waitSignal(pipeline.batch_rejected, timeout=1000) as blocker:
        bridge.publish("x", ["not", "numbers"])
    assert blocker.args[0] == "x"
    assert entry.chart.buffer.as_lists() == ([0.0, 1.0], [1.0, 2.0])


def test_shared_topic_feeds_both_charts(qtbot, bridge, plot_area, pipeline):
    ctrl = ChartLifecycleController(plot_area, CaptureSettings(construction_delay_ms=0))
    first = ctrl.schedule("temp.sensor1")
    second = ctrl.schedule("temp.sensor2")
    pipeline.subscribe("temp.sensor1", "temp", first)
    pipeline.subscribe("temp.sensor2", "temp", second)
    assert pipeline.identifiers_on("temp") == ["temp.sensor1", "temp.sensor2"]

    bridge.publish("temp", [4, 2])
    qtbot.waitUntil(
        lambda: first.chart is not None
        and second.chart is not None
        and len(first.chart.buffer) == 2
        and len(second.chart.buffer) == 2,
        timeout=1000,
    )
    assert first.chart.buffer.as_lists() == second.chart.buffer.as_lists()


def test_unsubscribe_stops_updates(qtbot, bridge, plot_area, pipeline):
    _ctrl, entry = _ready_entry(qtbot, plot_area)
    pipeline.subscribe("x", "x", entry)
    assert pipeline.unsubscribe("x") is True
    assert pipeline.unsubscribe("x") is False
    with qtbot.waitSignal(bridge.view_event, timeout=1000):
        bridge.publish("x", [1])
    assert len(entry.chart.buffer) == 0
