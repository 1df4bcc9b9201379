# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import logging
import typing

from sriovfs import exceptions
from sriovfs.configurators.pci import is_valid_pci_address
from sriovfs.machines.physical.device import Device
from sriovfs.providers.sysfs import SysfsSriovProvider

logger = logging.getLogger('sriovfs.Host')


class Host:
    def __init__(self, provider: SysfsSriovProvider) -> None:
        self.provider: SysfsSriovProvider = provider

    def __str__(self) -> str:
        return f'Host-{self.provider.pci_devices_path}'

    def discover_devices(self) -> typing.List[Device]:
        """Detect SR-IOV capable PCI devices (PFs) on the host, sorted by PCI address."""
        devices_path = self.provider.pci_devices_path
        try:
            entries = [entry.name for entry in devices_path.iterdir()]
        except (FileNotFoundError, NotADirectoryError) as exc:
            logger.error("PCI devices directory %s not found", devices_path)
            raise exceptions.SysfsNotFoundError(f'PCI devices directory {devices_path} not found') from exc
        except OSError as exc:
            logger.error("Unable to discover devices in %s", devices_path)
            raise exceptions.SysfsError(f'Unable to discover devices in {devices_path}. Error: {exc}') from exc

        detected_devices: typing.List[Device] = []
        for bdf in sorted(entries):
            if not is_valid_pci_address(bdf):
                continue

            # VFs expose sriov_totalvfs as well on some devices - skip anything with physfn
            if self.provider.is_device_sriov_capable(bdf) and not self.provider.is_sriov_virtual_function(bdf):
                detected_devices.append(Device(bdf, self.provider))

        logger.debug("Detected SR-IOV PCI device(s):")
        for dev in detected_devices:
            logger.debug("PCI BDF: %s", dev.pci_info.bdf)

        return detected_devices

    def get_device(self, bdf: str) -> Device:
        if not self.provider.is_device_exists(bdf):
            logger.error("PCI device %s not found", bdf)
            raise exceptions.SysfsNotFoundError(f'PCI device {bdf} not found')

        return Device(bdf, self.provider)
