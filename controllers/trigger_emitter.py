import logging

from views.event_bus import HostBridge

logger = logging.getLogger("CaptureTool.Trigger")

TRIGGER_TOPIC = "trigger"


class TriggerEmitter:
    """Asks the host to capture a signal; the payload is the identifier as-is."""

    def __init__(self, bridge: HostBridge):
        self.bridge = bridge
        self.sent = 0

    def emit(self, identifier: str) -> None:
        logger.info("Trigger requested for '%s'", identifier)
        self.sent += 1
        self.bridge.request(TRIGGER_TOPIC, identifier)
