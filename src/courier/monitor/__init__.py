"""Connectivity monitoring for the delivery engine."""

from courier.monitor.connectivity import (
    ConnectivityMonitor,
    PollingConnectivityMonitor,
    SignalConnectivityMonitor,
)

__all__ = [
    "ConnectivityMonitor",
    "PollingConnectivityMonitor",
    "SignalConnectivityMonitor",
]
