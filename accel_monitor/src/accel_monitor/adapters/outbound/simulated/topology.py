"""On-disk topology for a simulated fleet.

Rebuilds, under the fleet root, the parts of /dev and /sys that device
discovery reads:

    <root>/dev/<accel>/accel{i}               char device 508:(2i)
    <root>/dev/<accel>/accel_controlD{i}      char device 508:(2i+1)
    <root>/sys/bus/pci/devices/<bus id>       -> ../../../devices/pci<domain:bus>/<bus id>
    <root>/sys/devices/pci<domain:bus>/<bus id>/{vendor,device,numa_node}

The tree is always removed and recreated, never patched, so every
build is a consistent snapshot of the fleet.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from accel_monitor.adapters.outbound.simulated.fleet import SimulatedFleet
from accel_monitor.domain.value_objects.identifiers import pci_root, split_pci_id

logger = logging.getLogger(__name__)

ACCEL_MAJOR = 508
DEVICE_NODE_MODE = stat.S_IFCHR | 0o600
DIRECTORY_MODE = 0o755
FILE_MODE = 0o644


class TopologyError(Exception):
    """Simulated topology could not be built."""
    pass


class TopologyBuilder:
    """Writes the simulated /dev and /sys trees for a fleet."""

    def __init__(self, fleet: SimulatedFleet) -> None:
        self._fleet = fleet
        self._config = fleet.config

    def build(self) -> None:
        """Recreate device nodes and the PCI device tree.

        Raises:
            TopologyError: If any directory, node, link or file cannot be created.
        """
        self.create_device_nodes()
        self.create_pci_tree()
        logger.info(
            f"Simulated topology for {len(self._fleet)} devices built under {self._config.path}"
        )

    def create_device_nodes(self) -> None:
        dev_path = self._config.dev_path
        _recreate_directory(dev_path)

        for i in range(len(self._fleet)):
            self._create_device_node(dev_path / f"accel{i}", ACCEL_MAJOR, i * 2)
            self._create_device_node(dev_path / f"accel_controlD{i}", ACCEL_MAJOR, i * 2 + 1)

    def create_pci_tree(self) -> None:
        pci_devices_path = self._config.pci_devices_path
        _remove_tree(self._config.sys_devices_path)
        _recreate_directory(pci_devices_path)

        for index, device in enumerate(self._fleet.devices):
            bus_id = device.pci_bus_id
            link_target = Path("..", "..", "..", "devices", f"pci{pci_root(bus_id)}", bus_id)
            target_dir = Path(os.path.normpath(pci_devices_path / link_target))

            try:
                target_dir.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
            except OSError as e:
                raise TopologyError(f"failed to create target directory {target_dir}: {e}") from e

            link = pci_devices_path / bus_id
            try:
                link.symlink_to(link_target)
            except OSError as e:
                raise TopologyError(f"failed to create symlink {link} -> {link_target}: {e}") from e

            self._write_identity_files(target_dir, device.pci_id, self._fleet.numa_node_for(index))

    def _create_device_node(self, path: Path, major: int, minor: int) -> None:
        try:
            os.mknod(path, DEVICE_NODE_MODE, os.makedev(major, minor))
        except OSError as e:
            raise TopologyError(f"failed to create device node {path}: {e}") from e

    def _write_identity_files(self, directory: Path, pci_id: str, numa_node: int | None) -> None:
        vendor, device = split_pci_id(pci_id)
        files = {
            "vendor": f"0x{vendor}",
            "device": f"0x{device}",
        }
        # no numa_node file means the platform has no NUMA support
        if numa_node is not None:
            files["numa_node"] = str(numa_node)

        for name, content in files.items():
            file_path = directory / name
            try:
                file_path.write_text(content)
                file_path.chmod(FILE_MODE)
            except OSError as e:
                raise TopologyError(f"failed to create file {file_path}: {e}") from e


def _remove_tree(path: Path) -> None:
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)
    except OSError as e:
        raise TopologyError(f"failed to remove existing directory {path}: {e}") from e


def _recreate_directory(path: Path) -> None:
    _remove_tree(path)
    try:
        path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise TopologyError(f"failed to create directory {path}: {e}") from e
