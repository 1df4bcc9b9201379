# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import logging
from typing import List

from sriovfs import exceptions
from sriovfs.configurators.pci import normalize_pci_address
from sriovfs.providers.provider_interface import SriovProviderInterface

logger = logging.getLogger('sriovfs.Device')


class Device:
    """SR-IOV Physical Function seen through a provider.
    Holds only the PCI address - every query goes to the provider (sysfs) again.
    """
    class PciInfo:
        def __init__(self, bdf: str) -> None:
            self.bdf: str = normalize_pci_address(bdf)

    def __init__(self, bdf: str, provider: SriovProviderInterface) -> None:
        self.pci_info = self.PciInfo(bdf)
        self.provider: SriovProviderInterface = provider

    def __str__(self) -> str:
        return f'Device-{self.pci_info.bdf}'

    def get_total_vfs(self) -> int:
        return self.provider.get_sriov_virtual_functions_capacity(self.pci_info.bdf)

    def get_current_vfs(self) -> int:
        return self.provider.get_configured_virtual_functions_number(self.pci_info.bdf)

    def is_sriov_configured(self) -> bool:
        return self.provider.is_sriov_configured(self.pci_info.bdf)

    def create_vf(self, num: int) -> int:
        """Enable a requested number of VFs and return the number read back from sysfs."""
        self.provider.create_virtual_functions(self.pci_info.bdf, num)

        ret = self.get_current_vfs()
        if ret != num:
            logger.error("[%s] VFs number mismatch - requested: %s, got: %s", self.pci_info.bdf, num, ret)
            raise exceptions.ConfigurationRejectedError(f'VFs number mismatch - requested: {num}, got: {ret}')

        return ret

    def get_vfs(self) -> List[str]:
        return self.provider.get_virtual_functions_list(self.pci_info.bdf)

    def get_vf_bdf(self, vf_num: int) -> str:
        """Return BDF of a VF, vf_num is 1-based (VF1 is the first VF in virtfnN order)."""
        vfs = self.get_vfs()
        if not 1 <= vf_num <= len(vfs):
            logger.error("[%s] VF%s not available (enabled VFs: %s)", self.pci_info.bdf, vf_num, len(vfs))
            raise exceptions.InvalidArgumentError(f'VF{vf_num} not available on {self.pci_info.bdf} '
                                                  f'(enabled VFs: {len(vfs)})')

        return vfs[vf_num - 1]

    def get_vfs_bdf(self, *args: int) -> List[str]:
        vf_list = sorted(set(args))
        bdf_list = [self.get_vf_bdf(vf) for vf in vf_list]
        return bdf_list

    def get_vf_net_interfaces(self, vf_num: int) -> List[str]:
        return self.provider.get_net_interfaces_names(self.get_vf_bdf(vf_num))

    def get_driver(self) -> str:
        return self.provider.get_bound_driver(self.pci_info.bdf)

    def bind_driver(self, driver_name: str) -> None:
        self.provider.bind_driver(self.pci_info.bdf, driver_name)

    def unbind_driver(self) -> None:
        self.provider.unbind_driver(self.pci_info.bdf)

    def override_vf_driver(self, vf_num: int, driver_name: str) -> str:
        """Rebind VF to a given driver (e.g. vfio-pci) and return its BDF.
        Target driver must be loaded - the VF keeps its current driver otherwise.
        """
        vf_bdf = self.get_vf_bdf(vf_num)
        if self.provider.get_bound_driver(vf_bdf) == driver_name:
            logger.debug("[%s] VF%s already bound to %s", vf_bdf, vf_num, driver_name)
            return vf_bdf

        if not self.provider.is_driver_exists(driver_name):
            logger.error("[%s] Driver %s not loaded", vf_bdf, driver_name)
            raise exceptions.SysfsNotFoundError(f'Driver {driver_name} not loaded')

        # vfio-pci has no ID table, it accepts only devices with driver_override set
        self.provider.set_driver_override(vf_bdf, driver_name)
        self.provider.unbind_driver(vf_bdf)
        self.provider.bind_driver(vf_bdf, driver_name)
        logger.info("[%s] VF%s driver: %s", vf_bdf, vf_num, driver_name)

        return vf_bdf

    def get_iommu_group_devices(self) -> List[str]:
        """Devices sharing IOMMU group with the PF (including the PF itself)."""
        group_number = self.provider.get_iommu_group_number(self.pci_info.bdf)
        return self.provider.get_iommu_group_devices(group_number)
