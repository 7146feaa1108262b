"""Configuration document for a simulated accelerator fleet.

The fleet is described by a small YAML document, normally supplied
through the FAKEACCEL_SPEC environment variable:

    Path: "/tmp/gaudi2"
    HLDevice: "HL2080F0"
    DeviceCount: 8
    NumaNodes: 2
    PciID: "1da3:1020"
    UnhealthyFreq: 0.1
    TimeoutFreq: 0.1
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from accel_monitor.domain.value_objects.identifiers import split_pci_id

logger = logging.getLogger(__name__)

FLEET_SPEC_ENV = "FAKEACCEL_SPEC"

DEFAULT_FLEET_SPEC = """
Path: "/tmp/gaudi2"
HLDevice: "HL2080F0"
DeviceCount: 8
NumaNodes: 2
PciID: "1da3:1020"
UnhealthyFreq: 0.1
TimeoutFreq: 0.1
"""


class SimulationConfigError(Exception):
    """Simulated fleet configuration is malformed."""
    pass


class FleetConfig(BaseModel):
    """Simulated fleet description."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    path: Path = Field(alias="Path")
    pci_id: str = Field(default="1da3:1020", alias="PciID")
    hl_device: str = Field(default="HL2080F0", alias="HLDevice")
    device_count: int = Field(default=8, ge=0, lt=256, alias="DeviceCount")
    numa_nodes: int = Field(default=0, ge=0, alias="NumaNodes")
    unhealthy_freq: float = Field(default=0.0, ge=0.0, le=1.0, alias="UnhealthyFreq")
    timeout_freq: float = Field(default=0.0, ge=0.0, le=1.0, alias="TimeoutFreq")
    accel_subpath: str = Field(default="accel", alias="AccelSubpath")

    @field_validator("pci_id")
    @classmethod
    def _check_pci_id(cls, value: str) -> str:
        vendor, device = split_pci_id(value)
        int(vendor, 16)
        int(device, 16)
        return f"{vendor}:{device}"

    @property
    def pci_devices_path(self) -> Path:
        return self.path / "sys" / "bus" / "pci" / "devices"

    @property
    def sys_devices_path(self) -> Path:
        return self.path / "sys" / "devices"

    @property
    def dev_path(self) -> Path:
        return self.path / "dev" / self.accel_subpath

    @classmethod
    def from_yaml(cls, document: str) -> FleetConfig:
        """Parse a YAML fleet document.

        Raises:
            SimulationConfigError: If the document is not valid YAML or
                does not describe a valid fleet.
        """
        try:
            data = yaml.safe_load(document)
        except yaml.YAMLError as e:
            raise SimulationConfigError(f"error parsing config file: {e}") from e

        if not isinstance(data, dict):
            raise SimulationConfigError("error parsing config file: expected a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SimulationConfigError(f"error parsing config file: {e}") from e

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> FleetConfig:
        """Load the fleet from FAKEACCEL_SPEC, or the built-in default."""
        environ = os.environ if environ is None else environ
        document = environ.get(FLEET_SPEC_ENV, "")
        if document and document != "default":
            logger.info(f"{FLEET_SPEC_ENV} environment variable detected, using custom simulated fleet")
            return cls.from_yaml(document)
        return cls.from_yaml(DEFAULT_FLEET_SPEC)
