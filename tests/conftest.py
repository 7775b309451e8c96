"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for cloud_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from cloud_mock import FakeClock, FakeCloudClient, FakeSleeper, widget_registry  # noqa: E402
from converge.config import Config  # noqa: E402
from converge.descriptors import ResourceRegistry  # noqa: E402
from converge.poller import Poller  # noqa: E402
from converge.reconciler import Reconciler  # noqa: E402
from converge.retry import RetryPolicy  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> FakeSleeper:
    return FakeSleeper(clock)


@pytest.fixture
def cloud() -> FakeCloudClient:
    return FakeCloudClient(create_statuses=["pending", "pending", "active"])


@pytest.fixture
def registry() -> ResourceRegistry:
    return widget_registry()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Fast timings: one second interval, no jitter, no backoff."""
    return Config(
        specs_dir=tmp_path,
        create_timeout_seconds=60,
        update_timeout_seconds=60,
        delete_timeout_seconds=60,
        poll_interval_seconds=1.0,
        poll_jitter=0.0,
        max_consecutive_transient_errors=3,
        max_call_attempts=3,
        retry_backoff_base_seconds=0.0,
        call_timeout_seconds=5,
    )


@pytest.fixture
def reconciler(
    cloud: FakeCloudClient,
    registry: ResourceRegistry,
    config: Config,
    clock: FakeClock,
    sleeper: FakeSleeper,
) -> Reconciler:
    return Reconciler(
        cloud,
        registry,
        config,
        poller_factory=lambda finder, extractor, active: Poller(
            finder, extractor, active=active, clock=clock, sleep=sleeper
        ),
        retry_policy=RetryPolicy(
            max_attempts=config.max_call_attempts,
            backoff_base_seconds=0.0,
            jitter=0.0,
            call_timeout_seconds=config.call_timeout_seconds,
        ),
    )
