"""Exception hierarchy shared by the capture client and the host side."""


class CaptureToolError(Exception):
    """Base class for all errors raised by the capture tool."""


class ChartNotReadyError(CaptureToolError):
    """A chart did not finish construction before its readiness deadline."""

    def __init__(self, identifier: str, timeout_ms: int):
        super().__init__(
            f"chart for '{identifier}' not ready after {timeout_ms} ms"
        )
        self.identifier = identifier
        self.timeout_ms = timeout_ms


class ChartConstructionError(CaptureToolError):
    """Creating a chart container or render object failed."""


class TopicCollisionError(CaptureToolError):
    """Two or more signal identifiers map onto the same event topic."""

    def __init__(self, collisions):
        self.collisions = dict(collisions)
        detail = ", ".join(
            f"{topic}: {sorted(names)}" for topic, names in self.collisions.items()
        )
        super().__init__(f"topic collision ({detail})")


class ChannelMapError(CaptureToolError, ValueError):
    """Raised when a channel map file is malformed."""


class RpcError(CaptureToolError):
    """A device RPC call failed."""

    def __init__(self, name: str, reason: str = ""):
        message = f"RPC '{name}' failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.name = name
        self.reason = reason


class RpcTypeError(CaptureToolError, ValueError):
    """An RPC argument type name is not recognised or a value does not fit it."""
