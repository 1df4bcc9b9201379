# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import pytest

from sriovfs.configurators.pci import SysfsEntry
from sriovfs.providers.sysfs import SysfsSriovProvider

logger = logging.getLogger('Conftest')


@dataclass
class SysfsRoots:
    """Temporary stand-ins for /sys/bus/pci/devices, /sys/bus/pci/drivers and /sys/kernel/iommu_groups."""
    pci_devices_path: Path
    pci_drivers_path: Path
    iommu_groups_path: Path


class SysfsTree:
    """Fabricate a sysfs-like layout (devices, VFs, drivers, IOMMU groups) under temporary roots."""
    def __init__(self, roots: SysfsRoots) -> None:
        self.roots = roots

    def device_path(self, bdf: str) -> Path:
        return self.roots.pci_devices_path / bdf

    def driver_path(self, name: str) -> Path:
        return self.roots.pci_drivers_path / name

    def iommu_group_path(self, number: int) -> Path:
        return self.roots.iommu_groups_path / str(number)

    def make_device(self, bdf: str, **attrs: str) -> Path:
        """Create device directory with optional attribute files, e.g. sriov_totalvfs='8'."""
        device_path = self.device_path(bdf)
        device_path.mkdir(parents=True, exist_ok=True)
        for name, value in attrs.items():
            (device_path / name).write_text(value, encoding='utf-8')

        logger.debug("Fake device: %s %s", device_path, attrs)
        return device_path

    def make_vf(self, pf_bdf: str, vf_index: int, vf_bdf: str) -> Path:
        """Create VF directory linked as virtfnN from the PF and back with physfn."""
        vf_path = self.make_device(vf_bdf)
        pf_path = self.make_device(pf_bdf)
        os.symlink(vf_path, pf_path / f'virtfn{vf_index}')
        os.symlink(pf_path, vf_path / str(SysfsEntry.PHYSFN))
        return vf_path

    def make_net_interfaces(self, bdf: str, *names: str) -> Path:
        net_path = self.make_device(bdf) / str(SysfsEntry.NET)
        net_path.mkdir(exist_ok=True)
        for name in names:
            (net_path / name).mkdir()
        return net_path

    def make_driver(self, name: str) -> Path:
        driver_path = self.driver_path(name)
        driver_path.mkdir(parents=True, exist_ok=True)
        return driver_path

    def bind(self, bdf: str, driver_name: str) -> None:
        os.symlink(self.make_driver(driver_name), self.make_device(bdf) / str(SysfsEntry.DRIVER))

    def make_iommu_group(self, number: int, *bdfs: str) -> Path:
        devices_path = self.iommu_group_path(number) / str(SysfsEntry.DEVICES)
        devices_path.mkdir(parents=True, exist_ok=True)
        for bdf in bdfs:
            # Link targets are never evaluated - they may not exist
            os.symlink(self.device_path(bdf), devices_path / bdf)
        return devices_path

    def link_iommu_group(self, bdf: str, number: int) -> None:
        group_path = self.iommu_group_path(number)
        group_path.mkdir(parents=True, exist_ok=True)
        os.symlink(group_path, self.make_device(bdf) / str(SysfsEntry.IOMMU_GROUP))

    def read(self, path: Path) -> str:
        return path.read_text(encoding='utf-8').strip()


@pytest.fixture(name='sysfs_roots')
def fixture_sysfs_roots(tmp_path):
    roots = SysfsRoots(pci_devices_path=tmp_path / 'bus' / 'pci' / 'devices',
                       pci_drivers_path=tmp_path / 'bus' / 'pci' / 'drivers',
                       iommu_groups_path=tmp_path / 'kernel' / 'iommu_groups')
    for path in (roots.pci_devices_path, roots.pci_drivers_path, roots.iommu_groups_path):
        path.mkdir(parents=True)
    return roots


@pytest.fixture(name='sysfs_tree')
def fixture_sysfs_tree(sysfs_roots):
    return SysfsTree(sysfs_roots)


@pytest.fixture(name='provider')
def fixture_provider(sysfs_roots):
    return SysfsSriovProvider(sysfs_roots.pci_devices_path,
                              sysfs_roots.pci_drivers_path,
                              sysfs_roots.iommu_groups_path)
