"""Unit tests for the simulated fleet and its management library."""

import os
import random
import stat
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from accel_monitor.adapters.outbound.simulated import (
    FleetConfig,
    SimulatedFleet,
    SimulatedManagementLibrary,
    TopologyBuilder,
    TopologyError,
)
from accel_monitor.adapters.outbound.simulated.topology import ACCEL_MAJOR
from accel_monitor.adapters.outbound.sysfs import read_id_from_file
from accel_monitor.domain.value_objects.identifiers import EVENT_CRITICAL_ERROR
from accel_monitor.ports.outbound.errors import (
    AlreadyInitializedError,
    EventTimeoutError,
    InvalidArgumentError,
    NotFoundError,
    UninitializedError,
)


def make_library(tmp_path: Path, **overrides) -> SimulatedManagementLibrary:
    values = dict(
        path=tmp_path / "fleet",
        device_count=8,
        numa_nodes=2,
        unhealthy_freq=0.0,
        timeout_freq=0.0,
    )
    values.update(overrides)
    library = SimulatedManagementLibrary(FleetConfig(**values), rng=random.Random(42))
    library.initialize()
    return library


@pytest.mark.unit
class TestSimulatedFleet:
    """Test generated device identities."""

    def test_identities_are_unique(self, fleet_config):
        """Test that serials and UUIDs are unique across the fleet."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))

        serials = [d.serial_number for d in fleet.devices]
        uuids = [d.uuid for d in fleet.devices]
        assert len(set(serials)) == 8
        assert len(set(uuids)) == 8

    def test_identity_formats(self, fleet_config):
        """Test serial and UUID shapes."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))

        for device in fleet.devices:
            assert device.serial_number.startswith("FK")
            assert len(device.serial_number) == 10
            assert device.uuid.startswith("01F0-HL2080F0-99-")
            assert device.pci_id == "1da3:1020"

    def test_bus_ids_are_consecutive(self, fleet_config):
        """Test devices sit on consecutive buses in one domain."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))

        buses = [int(d.pci_bus_id.split(":")[1], 16) for d in fleet.devices]
        assert buses == list(range(buses[0], buses[0] + 8))
        assert all(d.pci_bus_id.startswith("0000:") and d.pci_bus_id.endswith(":00.0") for d in fleet.devices)

    def test_index_and_serial_views_agree(self, fleet_config):
        """Test both lookup maps hold the same devices."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))

        for index, device in fleet.by_index.items():
            assert fleet.by_serial[device.serial_number] is device
            assert device.minor_number == index

    def test_same_seed_same_fleet(self, fleet_config):
        """Test that identity generation is reproducible from a seed."""
        first = SimulatedFleet(fleet_config, rng=random.Random(99))
        second = SimulatedFleet(fleet_config, rng=random.Random(99))

        assert first.devices == second.devices

    def test_numa_spread(self, fleet_config):
        """Test eight devices over two nodes split four and four."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))
        assert [fleet.numa_node_for(i) for i in range(8)] == [0, 0, 0, 0, 1, 1, 1, 1]

    @pytest.mark.property
    @given(
        device_count=st.integers(min_value=1, max_value=64),
        numa_nodes=st.integers(min_value=0, max_value=16),
    )
    @settings(max_examples=100, deadline=None)
    def test_numa_node_always_in_range(self, device_count, numa_nodes):
        """Property: every device gets a node in [0, K), or none when K is 0."""
        config = FleetConfig(path=Path("/unused"), device_count=device_count, numa_nodes=numa_nodes)
        fleet = SimulatedFleet(config, rng=random.Random(0))

        for index in range(device_count):
            node = fleet.numa_node_for(index)
            if numa_nodes == 0:
                assert node is None
            else:
                assert 0 <= node < numa_nodes

    def test_registration_tracking(self, fleet_config):
        """Test per-serial event registration bookkeeping."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))
        serial = fleet.by_index[0].serial_number

        fleet.register_event(serial, EVENT_CRITICAL_ERROR)
        assert fleet.is_registered(serial, EVENT_CRITICAL_ERROR)

        fleet.unregister_events([(serial, EVENT_CRITICAL_ERROR)])
        assert fleet.registered_events(serial) == frozenset()

    def test_registration_shared_between_sets(self, fleet_config):
        """Test a registration held by two sets survives releasing one of them."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(7))
        serial = fleet.by_index[0].serial_number

        fleet.register_event(serial, EVENT_CRITICAL_ERROR)
        fleet.register_event(serial, EVENT_CRITICAL_ERROR)
        fleet.unregister_events([(serial, EVENT_CRITICAL_ERROR)])
        assert fleet.registered_events(serial) == frozenset({EVENT_CRITICAL_ERROR})

        fleet.unregister_events([(serial, EVENT_CRITICAL_ERROR)])
        assert not fleet.is_registered(serial, EVENT_CRITICAL_ERROR)


@pytest.mark.unit
class TestTopology:
    """Test the on-disk topology of a simulated fleet."""

    def test_device_nodes(self, simulated_library, device_nodes):
        """Test two character nodes per device with the expected numbers."""
        dev_path = simulated_library.config.dev_path

        assert len(device_nodes) == 16
        by_name = {node.path.name: node for node in device_nodes}
        for i in range(8):
            accel = by_name[f"accel{i}"]
            control = by_name[f"accel_controlD{i}"]
            assert accel.path == dev_path / f"accel{i}"
            assert (accel.major, accel.minor) == (ACCEL_MAJOR, 2 * i)
            assert (control.major, control.minor) == (ACCEL_MAJOR, 2 * i + 1)
            assert stat.S_ISCHR(accel.mode)
            assert stat.S_IMODE(accel.mode) == 0o600

    def test_pci_links_resolve_to_device_dirs(self, simulated_library):
        """Test every bus ID is a relative link into sys/devices."""
        config = simulated_library.config

        for device in simulated_library.fleet.devices:
            link = config.pci_devices_path / device.pci_bus_id
            root = device.pci_bus_id[:7]
            assert link.is_symlink()
            assert os.readlink(link) == f"../../../devices/pci{root}/{device.pci_bus_id}"
            assert link.resolve() == (config.sys_devices_path / f"pci{root}" / device.pci_bus_id).resolve()

    def test_identity_files(self, simulated_library):
        """Test vendor, device and NUMA files in the device directory."""
        config = simulated_library.config

        for index, device in enumerate(simulated_library.fleet.devices):
            device_dir = config.pci_devices_path / device.pci_bus_id
            assert (device_dir / "vendor").read_text() == "0x1da3"
            assert (device_dir / "device").read_text() == "0x1020"
            assert (device_dir / "numa_node").read_text() == str(index // 4)
            assert stat.S_IMODE((device_dir / "vendor").stat().st_mode) == 0o644

    def test_identity_files_read_back(self, simulated_library):
        """Test the identity files yield the fleet's PCI codes through sysfs reading."""
        config = simulated_library.config

        for device in simulated_library.fleet.devices:
            assert read_id_from_file(config.pci_devices_path, device.pci_bus_id, "vendor") == "1da3"
            assert read_id_from_file(config.pci_devices_path, device.pci_bus_id, "device") == "1020"

    def test_numa_read_back_through_device(self, simulated_library):
        """Test that devices read their affinity from the generated tree."""
        nodes = [simulated_library.device_by_index(i).numa_node() for i in range(8)]
        assert nodes == [0, 0, 0, 0, 1, 1, 1, 1]

    def test_no_numa_file_without_numa(self, tmp_path, device_nodes):
        """Test that a fleet without NUMA nodes writes no numa_node file."""
        library = make_library(tmp_path, numa_nodes=0)
        try:
            device = library.device_by_index(0)
            assert not (library.config.pci_devices_path / device.pci_bus_id / "numa_node").exists()
            assert device.numa_node() is None
        finally:
            library.shutdown()

    def test_rebuild_replaces_previous_tree(self, tmp_path, device_nodes):
        """Test that rebuilding removes stale devices from an earlier build."""
        first = make_library(tmp_path, device_count=8)
        first.shutdown()
        stale = first.config.pci_devices_path / first.fleet.by_index[7].pci_bus_id

        second = make_library(tmp_path, device_count=2)
        try:
            entries = sorted(p.name for p in second.config.pci_devices_path.iterdir())
            assert entries == sorted(d.pci_bus_id for d in second.fleet.devices)
            assert sorted(p.name for p in second.config.dev_path.iterdir()) == [
                "accel0", "accel1", "accel_controlD0", "accel_controlD1",
            ]
            if stale.name not in entries:
                assert not stale.exists()
        finally:
            second.shutdown()

    def test_device_type_from_topology(self, simulated_library):
        """Test that family detection works against the generated tree."""
        assert simulated_library.device_type_name() == "gaudi"

    def test_mknod_failure(self, fleet_config):
        """Test that a failing device node creation aborts the build."""
        with patch(
            "accel_monitor.adapters.outbound.simulated.topology.os.mknod",
            side_effect=PermissionError("operation not permitted"),
        ):
            with pytest.raises(TopologyError, match="failed to create device node"):
                SimulatedManagementLibrary(fleet_config, rng=random.Random(1))

    @pytest.mark.root
    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() != 0, reason="requires root")
    def test_real_device_nodes(self, fleet_config):
        """Test real character devices when running as root."""
        fleet = SimulatedFleet(fleet_config, rng=random.Random(3))
        TopologyBuilder(fleet).build()

        node = fleet_config.dev_path / "accel3"
        info = node.stat()
        assert stat.S_ISCHR(info.st_mode)
        assert os.major(info.st_rdev) == ACCEL_MAJOR
        assert os.minor(info.st_rdev) == 6


@pytest.mark.unit
class TestSimulatedLibrary:
    """Test the simulated management library."""

    def test_lifecycle(self, fleet_config, device_nodes):
        """Test initialize and shutdown ordering errors."""
        library = SimulatedManagementLibrary(fleet_config, rng=random.Random(1))

        with pytest.raises(UninitializedError):
            library.device_count()

        library.initialize()
        with pytest.raises(AlreadyInitializedError):
            library.initialize()

        library.shutdown()
        with pytest.raises(UninitializedError):
            library.shutdown()

    def test_lookups_agree(self, simulated_library):
        """Test index and serial lookups return the same device."""
        assert simulated_library.device_count() == 8
        for i in range(8):
            device = simulated_library.device_by_index(i)
            assert simulated_library.device_by_serial(device.serial_number) == device

    def test_unknown_lookups(self, simulated_library):
        """Test lookups outside the fleet raise NotFoundError."""
        with pytest.raises(NotFoundError):
            simulated_library.device_by_index(8)
        with pytest.raises(NotFoundError):
            simulated_library.device_by_serial("FK99999999x")

    def test_register_is_idempotent(self, simulated_library):
        """Test that registering the same pair twice records it once."""
        event_set = simulated_library.new_event_set()
        serial = simulated_library.device_by_index(0).serial_number

        simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, serial)
        simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, serial)

        assert event_set.registrations == {(serial, EVENT_CRITICAL_ERROR)}
        assert simulated_library.fleet.registered_events(serial) == frozenset({EVENT_CRITICAL_ERROR})

    def test_register_unknown_serial(self, simulated_library):
        """Test registering a device outside the fleet."""
        event_set = simulated_library.new_event_set()
        with pytest.raises(NotFoundError):
            simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, "nope")

    def test_released_event_set(self, simulated_library):
        """Test a deleted event set drops its registrations and rejects use."""
        event_set = simulated_library.new_event_set()
        serial = simulated_library.device_by_index(0).serial_number
        simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, serial)

        simulated_library.delete_event_set(event_set)

        assert not simulated_library.fleet.is_registered(serial, EVENT_CRITICAL_ERROR)
        with pytest.raises(InvalidArgumentError):
            simulated_library.wait_for_event(event_set, 10)
        with pytest.raises(InvalidArgumentError):
            simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, serial)

    def test_unregistered_devices_only_heartbeat(self, tmp_path, device_nodes):
        """Test faults are never injected for devices without a registration."""
        library = make_library(tmp_path, unhealthy_freq=1.0, timeout_freq=1.0)
        try:
            event_set = library.new_event_set()
            for _ in range(50):
                assert library.wait_for_event(event_set, 1000).is_heartbeat
        finally:
            library.shutdown()

    def test_always_unhealthy(self, tmp_path, device_nodes):
        """Test an unhealthy frequency of 1.0 makes every event critical."""
        library = make_library(tmp_path, unhealthy_freq=1.0)
        try:
            event_set = library.new_event_set()
            for device in library.fleet.devices:
                library.register_event(event_set, EVENT_CRITICAL_ERROR, device.serial_number)

            for _ in range(50):
                event = library.wait_for_event(event_set, 1000)
                assert event.is_critical(library.critical_error_bit())
                assert event.serial in library.fleet.by_serial
        finally:
            library.shutdown()

    def test_releasing_one_set_keeps_the_other(self, tmp_path, device_nodes):
        """Test deleting one event set leaves another set's registrations live."""
        library = make_library(tmp_path, unhealthy_freq=1.0)
        try:
            first, second = library.new_event_set(), library.new_event_set()
            for device in library.fleet.devices:
                library.register_event(first, EVENT_CRITICAL_ERROR, device.serial_number)
                library.register_event(second, EVENT_CRITICAL_ERROR, device.serial_number)
            library.delete_event_set(first)

            for _ in range(50):
                assert library.wait_for_event(second, 1000).is_critical(library.critical_error_bit())
            assert all(
                library.fleet.is_registered(device.serial_number, EVENT_CRITICAL_ERROR)
                for device in library.fleet.devices
            )
        finally:
            library.shutdown()

    def test_empty_set_ignores_other_registrations(self, tmp_path, device_nodes):
        """Test a set without registrations only heartbeats while another set is registered."""
        library = make_library(tmp_path, unhealthy_freq=1.0, timeout_freq=1.0)
        try:
            registered, empty = library.new_event_set(), library.new_event_set()
            for device in library.fleet.devices:
                library.register_event(registered, EVENT_CRITICAL_ERROR, device.serial_number)

            for _ in range(50):
                assert library.wait_for_event(empty, 1000).is_heartbeat
        finally:
            library.shutdown()

    def test_never_unhealthy(self, simulated_library):
        """Test a zero frequency only produces heartbeats."""
        event_set = simulated_library.new_event_set()
        for device in simulated_library.fleet.devices:
            simulated_library.register_event(event_set, EVENT_CRITICAL_ERROR, device.serial_number)

        for _ in range(50):
            assert simulated_library.wait_for_event(event_set, 1000).is_heartbeat

    def test_always_timeout(self, tmp_path, device_nodes):
        """Test a timeout frequency of 1.0 waits out the timeout and raises."""
        library = make_library(tmp_path, timeout_freq=1.0, unhealthy_freq=1.0)
        try:
            event_set = library.new_event_set()
            for device in library.fleet.devices:
                library.register_event(event_set, EVENT_CRITICAL_ERROR, device.serial_number)

            start = time.monotonic()
            with pytest.raises(EventTimeoutError):
                library.wait_for_event(event_set, 50)
            assert time.monotonic() - start >= 0.045
        finally:
            library.shutdown()

    def test_independent_fleets(self, tmp_path, device_nodes):
        """Test that two libraries keep separate registrations."""
        first = make_library(tmp_path / "a")
        second = make_library(tmp_path / "b")
        try:
            event_set = first.new_event_set()
            serial = first.device_by_index(0).serial_number
            first.register_event(event_set, EVENT_CRITICAL_ERROR, serial)

            assert first.fleet.is_registered(serial, EVENT_CRITICAL_ERROR)
            assert not second.fleet.registered_events(serial)
        finally:
            first.shutdown()
            second.shutdown()
