"""Connectivity gate - is the backend reachable right now."""

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

ReconnectListener = Callable[[], None]


class ConnectivitySource(Protocol):
    """Platform reachability signal."""

    def is_connected(self) -> bool:
        """Current reachability."""
        ...


class ConnectivityGate:
    """Boolean reachability predicate shared by every component.

    The source is sampled on every call; nothing is cached between
    operations. No retry or backoff lives here.
    """

    def __init__(self, source: ConnectivitySource) -> None:
        self._source = source
        self._listeners: list[ReconnectListener] = []

    def is_online(self) -> bool:
        """Whether remote calls should be attempted."""
        return self._source.is_connected()

    def add_reconnect_listener(self, listener: ReconnectListener) -> None:
        """Register a callback for offline -> online transitions."""
        self._listeners.append(listener)

    def notify_reconnected(self) -> None:
        """Called by push-style sources when connectivity comes back."""
        logger.info(f"[connectivity] back online, notifying {len(self._listeners)} listener(s)")
        for listener in self._listeners:
            listener()


class ManualConnectivity:
    """Settable connectivity source that pushes transitions to gates."""

    def __init__(self, connected: bool = True) -> None:
        self._connected = connected
        self._gates: list[ConnectivityGate] = []

    def is_connected(self) -> bool:
        """Current reachability."""
        return self._connected

    def attach(self, gate: ConnectivityGate) -> None:
        """Push future reconnects to gate."""
        self._gates.append(gate)

    def set_connected(self, connected: bool) -> None:
        """Update reachability, notifying gates on offline -> online."""
        was_connected = self._connected
        self._connected = connected

        if connected and not was_connected:
            for gate in self._gates:
                gate.notify_reconnected()
