"""Pytest configuration and shared fixtures for accelerator monitor tests."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from accel_monitor.adapters.outbound.simulated import FleetConfig, SimulatedManagementLibrary
from accel_monitor.infrastructure.config import Config, get_config
from accel_monitor.infrastructure.container import Container
from accel_monitor.infrastructure.metrics import MetricsRegistry


@dataclass
class DeviceNode:
    """A device node creation recorded instead of calling mknod."""
    path: Path
    mode: int
    major: int
    minor: int


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container and cached config before each test."""
    Container.reset()
    get_config.cache_clear()
    yield
    Container.reset()
    get_config.cache_clear()


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def device_nodes() -> Generator[list[DeviceNode], None, None]:
    """Record device node creation as plain files.

    Creating character devices needs CAP_MKNOD, so tests write an empty
    file in place of each node and record what would have been created.
    """
    created: list[DeviceNode] = []

    def fake_mknod(path, mode=0o600, device=0):
        Path(path).touch()
        created.append(DeviceNode(Path(path), mode, os.major(device), os.minor(device)))

    with patch("accel_monitor.adapters.outbound.simulated.topology.os.mknod", side_effect=fake_mknod):
        yield created


@pytest.fixture
def fleet_config(tmp_path: Path) -> FleetConfig:
    """Eight devices over two NUMA nodes, no injected faults."""
    return FleetConfig(
        path=tmp_path / "fleet",
        device_count=8,
        numa_nodes=2,
        pci_id="1da3:1020",
        hl_device="HL2080F0",
        unhealthy_freq=0.0,
        timeout_freq=0.0,
    )


@pytest.fixture
def simulated_library(fleet_config: FleetConfig, device_nodes) -> Generator[SimulatedManagementLibrary, None, None]:
    """Initialized simulated library over the default test fleet."""
    library = SimulatedManagementLibrary(fleet_config, rng=random.Random(1234))
    library.initialize()
    yield library
    if library.initialized:
        library.shutdown()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Separate registry to avoid duplicate collector errors between tests
    return MetricsRegistry(registry=CollectorRegistry(auto_describe=True))


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
    config.addinivalue_line("markers", "root: mark test as requiring root privileges")
