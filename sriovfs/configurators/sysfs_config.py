# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from sriovfs import exceptions

logger = logging.getLogger('sriovfs.SriovfsConfigurator')

DEFAULT_PCI_DEVICES_PATH = '/sys/bus/pci/devices'
DEFAULT_PCI_DRIVERS_PATH = '/sys/bus/pci/drivers'
DEFAULT_IOMMU_GROUPS_PATH = '/sys/kernel/iommu_groups'


@dataclass
class SysfsPathsConfig:
    pci_devices_path: str = DEFAULT_PCI_DEVICES_PATH
    pci_drivers_path: str = DEFAULT_PCI_DRIVERS_PATH
    iommu_groups_path: str = DEFAULT_IOMMU_GROUPS_PATH


@dataclass
class SriovfsConfig:
    sysfs: SysfsPathsConfig = field(default_factory=SysfsPathsConfig)
    # Kernel log buffer tapped on sysfs writes, e.g. /dev/kmsg (None - disabled)
    kmsg_path: Optional[str] = None


class SriovfsConfigurator:
    def __init__(self, config_file_path: Path) -> None:
        self.config_file: Path = Path(config_file_path)
        self.config: SriovfsConfig = self.query_config()

    def query_config(self) -> SriovfsConfig:
        json_reader = SriovfsConfigJsonReader(self.config_file)
        return json_reader.config

    def get_sysfs_config(self) -> SysfsPathsConfig:
        return self.config.sysfs

    def get_kmsg_path(self) -> Optional[str]:
        return self.config.kmsg_path


class SriovfsConfigJsonReader:
    def __init__(self, config_json_path: Path) -> None:
        config_data = self.read_json_file(config_json_path)
        self.config: SriovfsConfig = self.parse_json_file(config_data)

    def read_json_file(self, config_json_file: Path) -> Any:
        if not config_json_file.exists():
            logger.error("sriovfs config JSON file not found: %s", config_json_file)
            raise exceptions.SriovConfigError(f'sriovfs config JSON file not found: {config_json_file}')

        with open(config_json_file, mode='r', encoding='utf-8') as json_file:
            try:
                config_json = json.load(json_file)
            except json.JSONDecodeError as exc:
                logger.error("Invalid sriovfs config JSON format: %s", exc)
                raise exceptions.SriovConfigError(f'Invalid sriovfs config JSON format: {exc}') from exc

        if not isinstance(config_json, dict):
            logger.error("sriovfs config JSON root must be an object")
            raise exceptions.SriovConfigError('sriovfs config JSON root must be an object')

        return config_json

    def get_path(self, section: Dict, key: str, default: Optional[str]) -> Optional[str]:
        value = section.get(key, default)
        if value is not None and not isinstance(value, str):
            logger.error("Invalid sriovfs config value for '%s': %r", key, value)
            raise exceptions.SriovConfigError(f'Invalid sriovfs config value for {key!r}: {value!r}')

        return value

    def get_section(self, config_json: Dict, name: str) -> Dict:
        section = config_json.get(name, {})
        if not isinstance(section, dict):
            logger.error("sriovfs config '%s' section must be an object", name)
            raise exceptions.SriovConfigError(f'sriovfs config {name!r} section must be an object')

        return section

    def get_sysfs_config(self, sysfs_config_json: Dict) -> SysfsPathsConfig:
        sysfs_config = SysfsPathsConfig(
            pci_devices_path=self.get_path(sysfs_config_json, 'pci_devices_path', DEFAULT_PCI_DEVICES_PATH),
            pci_drivers_path=self.get_path(sysfs_config_json, 'pci_drivers_path', DEFAULT_PCI_DRIVERS_PATH),
            iommu_groups_path=self.get_path(sysfs_config_json, 'iommu_groups_path', DEFAULT_IOMMU_GROUPS_PATH))

        return sysfs_config

    def parse_json_file(self, config_json: Dict) -> SriovfsConfig:
        config = SriovfsConfig(
            sysfs=self.get_sysfs_config(self.get_section(config_json, 'sysfs')),
            kmsg_path=self.get_path(self.get_section(config_json, 'logging'), 'kmsg_path', None))

        logger.debug("sriovfs config: %s", config)
        return config
