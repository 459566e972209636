import logging

import pytest

from model.channel import (
    ChannelMap,
    assign_topics,
    derive_topic,
    find_collisions,
    load_channel_map,
    normalize_identifiers,
    parse_channel_map,
)
from model.errors import ChannelMapError, TopicCollisionError


def test_derive_topic_truncates_at_first_separator():
    assert derive_topic("temp.sensor1") == "temp"
    assert derive_topic("a.b.c") == "a"
    assert derive_topic("vector") == "vector"
    # exact and case sensitive
    assert derive_topic("Temp.x") == "Temp"
    assert derive_topic(".hidden") == ""
    assert derive_topic("cpu:load", separator=":") == "cpu"


def test_normalize_identifiers_accepts_string_and_drops_junk():
    assert normalize_identifiers("vector") == ["vector"]
    assert normalize_identifiers(["b", "a", "b", 3, "", None, "c"]) == ["b", "a", "c"]
    assert normalize_identifiers({"not": "a list"}) == []


def test_collision_is_kept_and_logged(caplog):
    caplog.set_level(logging.WARNING, logger="CaptureTool.Channels")
    topics = assign_topics(["temp.sensor1", "temp.sensor2", "cpu.load"])
    assert topics == {
        "temp.sensor1": "temp",
        "temp.sensor2": "temp",
        "cpu.load": "cpu",
    }
    assert find_collisions(topics) == {"temp": ["temp.sensor1", "temp.sensor2"]}
    assert any("shared by temp.sensor1, temp.sensor2" in r.getMessage() for r in caplog.records)


def test_collision_strict_mode_raises():
    with pytest.raises(TopicCollisionError) as info:
        assign_topics(["temp.sensor1", "temp.sensor2"], strict=True)
    assert info.value.collisions == {"temp": ["temp.sensor1", "temp.sensor2"]}


def test_injected_topic_function_removes_collision():
    topics = assign_topics(["temp.sensor1", "temp.sensor2"], topic_for=lambda s: s, strict=True)
    assert topics == {"temp.sensor1": "temp.sensor1", "temp.sensor2": "temp.sensor2"}


def test_channel_map_topic_override_and_fallback():
    cmap = ChannelMap(names=["a.x", "b.y"], topics={"b.y": "custom"})
    assert cmap.topic_for("a.x") == "a"
    assert cmap.topic_for("b.y") == "custom"


def test_load_channel_map(tmp_path):
    path = tmp_path / "channels.yaml"
    path.write_text(
        "channels:\n"
        "  - name: vector\n"
        "  - therm.raw\n"
        "  - name: therm.filtered\n"
        "    topic: therm_filtered\n",
        encoding="utf-8",
    )
    cmap = load_channel_map(path)
    assert cmap.names == ["vector", "therm.raw", "therm.filtered"]
    assert cmap.topics == {"therm.filtered": "therm_filtered"}


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"channels": "vector"},
        {"channels": [{"topic": "x"}]},
        {"channels": [{"name": "a"}, {"name": "a"}]},
        {"channels": [{"name": "a", "topic": 5}]},
        {"channels": [42]},
    ],
)
def test_parse_channel_map_rejects_malformed(raw):
    with pytest.raises(ChannelMapError):
        parse_channel_map(raw)


def test_load_channel_map_reports_bad_yaml_and_missing_file(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("channels: [unterminated\n", encoding="utf-8")
    with pytest.raises(ChannelMapError):
        load_channel_map(bad)
    with pytest.raises(ChannelMapError):
        load_channel_map(tmp_path / "missing.yaml")
