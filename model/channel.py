"""Signal identifiers, topic derivation and the optional YAML channel map.

A signal identifier such as ``vector.capture`` is announced by the host and
doubles as the object name of its trigger button.  Sample batches for it are
published on a *topic* which, unless a channel map overrides it, is the part
of the identifier before the first separator (``vector``).  Distinct
identifiers can therefore share a topic; :func:`assign_topics` reports such
collisions instead of hiding them.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence

import yaml

from model.errors import ChannelMapError, TopicCollisionError

logger = logging.getLogger("CaptureTool.Channels")

TOPIC_SEPARATOR = "."

TopicFunc = Callable[[str], str]


def derive_topic(identifier: str, separator: str = TOPIC_SEPARATOR) -> str:
    """Return the substring of ``identifier`` before the first ``separator``.

    The match is exact and case sensitive; an identifier without the
    separator is its own topic.
    """
    return identifier.split(separator, 1)[0]


def normalize_identifiers(payload: Any) -> List[str]:
    """Turn a ``channels`` payload into an ordered list of unique identifiers.

    The host may announce a single identifier as a bare string.  Non-string
    entries and repeats are dropped with a warning.
    """
    if isinstance(payload, str):
        items: Iterable[Any] = [payload]
    elif isinstance(payload, (list, tuple)):
        items = payload
    else:
        logger.warning("Ignoring channel announcement of type %s", type(payload).__name__)
        return []

    result: List[str] = []
    for item in items:
        if not isinstance(item, str) or not item:
            logger.warning("Ignoring invalid signal identifier: %r", item)
            continue
        if item in result:
            logger.warning("Duplicate signal identifier %s ignored", item)
            continue
        result.append(item)
    return result


def find_collisions(topics: Dict[str, str]) -> Dict[str, List[str]]:
    """Group identifiers by topic and keep only topics used more than once."""
    by_topic: Dict[str, List[str]] = OrderedDict()
    for identifier, topic in topics.items():
        by_topic.setdefault(topic, []).append(identifier)
    return {topic: names for topic, names in by_topic.items() if len(names) > 1}


def assign_topics(
    identifiers: Sequence[str],
    topic_for: TopicFunc = derive_topic,
    strict: bool = False,
) -> Dict[str, str]:
    """Map every identifier to its topic.

    Shared topics are kept (both charts receive every batch published on the
    topic) and logged as a warning.  With ``strict`` they raise
    :class:`TopicCollisionError` instead.
    """
    topics: Dict[str, str] = OrderedDict(
        (identifier, topic_for(identifier)) for identifier in identifiers
    )
    collisions = find_collisions(topics)
    if collisions:
        if strict:
            raise TopicCollisionError(collisions)
        for topic, names in collisions.items():
            logger.warning(
                "Topic '%s' is shared by %s; every batch on it reaches all of them",
                topic,
                ", ".join(names),
            )
    return topics


@dataclass
class ChannelMap:
    """Ordered channel names with optional per-channel topic overrides."""

    names: List[str] = field(default_factory=list)
    topics: Dict[str, str] = field(default_factory=dict)

    def topic_for(self, identifier: str) -> str:
        topic = self.topics.get(identifier)
        if topic is None:
            return derive_topic(identifier)
        return topic


def _ensure_str(value: Any, *, context: str) -> str:
    if not isinstance(value, str) or not value:
        raise ChannelMapError(f"{context} must be a non-empty string")
    return value


def parse_channel_map(raw: Any) -> ChannelMap:
    if not isinstance(raw, dict):
        raise ChannelMapError("channel map must be a mapping")
    entries = raw.get("channels")
    if not isinstance(entries, list):
        raise ChannelMapError("channels must be a list")

    channel_map = ChannelMap()
    for idx, item in enumerate(entries):
        if isinstance(item, str):
            item = {"name": item}
        if not isinstance(item, dict):
            raise ChannelMapError(f"channels[{idx}] must be a mapping or a string")
        name = _ensure_str(item.get("name"), context=f"channels[{idx}].name")
        if name in channel_map.names:
            raise ChannelMapError(f"channels[{idx}] repeats channel '{name}'")
        channel_map.names.append(name)
        if "topic" in item:
            channel_map.topics[name] = _ensure_str(
                item["topic"], context=f"channels[{idx}].topic"
            )
    return channel_map


def load_channel_map(path: Path) -> ChannelMap:
    """Read a channel map such as::

        channels:
          - name: vector.capture
          - name: therm.capture
            topic: therm_raw
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ChannelMapError(f"cannot read channel map {path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ChannelMapError(f"invalid YAML in {path}: {exc}") from exc
    channel_map = parse_channel_map(raw)
    logger.info("Loaded %d channels from %s", len(channel_map.names), path)
    return channel_map

