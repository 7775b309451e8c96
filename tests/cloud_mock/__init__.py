"""In-memory cloud for reconciliation tests.

Provides a scripted Remote Client that plays a control plane without any
network access, plus a fake monotonic clock and sleeper for the Poller.

Key Features:
- Scripted status sequences per resource (pending -> pending -> active)
- Error injection per method (throttling, not found, validation)
- Call recording for assertions on what reached the remote side
- Deterministic time: sleeps advance the fake clock instantly

Usage:
    from cloud_mock import FakeCloudClient, FakeClock, FakeSleeper, widget_registry

    cloud = FakeCloudClient(create_statuses=["pending", "active"])
    clock = FakeClock()
    sleeper = FakeSleeper(clock)
"""

from .client import GONE, FakeCloudClient, FakeResource
from .timing import FakeClock, FakeSleeper
from .widgets import WIDGET, widget, widget_registry

__all__ = [
    "GONE",
    "WIDGET",
    "FakeClock",
    "FakeCloudClient",
    "FakeResource",
    "FakeSleeper",
    "widget",
    "widget_registry",
]
