# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import logging
import os
import re
import typing
from pathlib import Path

from sriovfs import exceptions
from sriovfs.configurators.pci import (SysfsEntry, get_virtfn_index,
                                       normalize_pci_address)
from sriovfs.configurators.sysfs_config import (DEFAULT_IOMMU_GROUPS_PATH,
                                                DEFAULT_PCI_DEVICES_PATH,
                                                DEFAULT_PCI_DRIVERS_PATH,
                                                SriovfsConfig)
from sriovfs.helpers.log import LogDecorators
from sriovfs.providers.provider_interface import SriovProviderInterface

logger = logging.getLogger('sriovfs.SysfsProvider')

# Plain base-10 integer as exposed by sysfs attributes (no underscores, no base prefix)
DECIMAL_PATTERN = re.compile(r'[+-]?[0-9]+')

PathLike = typing.Union[str, os.PathLike]


class SysfsSriovProvider(SriovProviderInterface):
    """SR-IOV device provider operating on the Linux sysfs PCI tree.

    Nothing is cached - every call reads sysfs again, as the kernel may change it at any time.
    Root paths are injected, so a directory tree mimicking sysfs layout can replace /sys in tests.
    Boolean checks never raise (any failure means 'no'), value and action operations raise
    SriovError subclasses.
    """
    def __init__(self,
                 pci_devices_path: PathLike = DEFAULT_PCI_DEVICES_PATH,
                 pci_drivers_path: PathLike = DEFAULT_PCI_DRIVERS_PATH,
                 iommu_groups_path: PathLike = DEFAULT_IOMMU_GROUPS_PATH,
                 kmsg_path: typing.Optional[PathLike] = None) -> None:
        self.pci_devices_path = Path(pci_devices_path)
        self.pci_drivers_path = Path(pci_drivers_path)
        self.iommu_groups_path = Path(iommu_groups_path)
        # Used by LogDecorators.parse_kmsg on sysfs writes
        self.kmsg_path = kmsg_path

    @classmethod
    def from_config(cls, config: SriovfsConfig) -> 'SysfsSriovProvider':
        return cls(config.sysfs.pci_devices_path,
                   config.sysfs.pci_drivers_path,
                   config.sysfs.iommu_groups_path,
                   kmsg_path=config.kmsg_path)

    def __str__(self) -> str:
        return f'SysfsSriovProvider-{self.pci_devices_path}'

    def __device_path(self, address: str) -> Path:
        return self.pci_devices_path / normalize_pci_address(address)

    def __existing_device_path(self, address: str) -> Path:
        device_path = self.__device_path(address)
        if not device_path.is_dir():
            logger.error("PCI device not found: %s", device_path)
            raise exceptions.SysfsNotFoundError(f'PCI device not found: {device_path}')

        return device_path

    def __read_fs(self, path: Path) -> str:
        try:
            ret = path.read_text(encoding='utf-8')
        except (FileNotFoundError, NotADirectoryError) as exc:
            logger.error("Unable to read %s - not found", path)
            raise exceptions.SysfsNotFoundError(f'Could not read from {path}: not found') from exc
        except UnicodeDecodeError as exc:
            logger.error("Unable to decode %s", path)
            raise exceptions.SysfsParseError(f'Could not decode {path}. Error: {exc}') from exc
        except OSError as exc:
            logger.error("Unable to read %s", path)
            raise exceptions.SysfsError(f'Could not read from {path}. Error: {exc}') from exc

        logger.debug("Read: %s -> %s", path, ret.strip())
        return ret

    def __read_int(self, path: Path) -> int:
        value = self.__read_fs(path).strip()
        if not DECIMAL_PATTERN.fullmatch(value):
            logger.error("Invalid integer in %s: %r", path, value)
            raise exceptions.SysfsParseError(f'Invalid integer in {path}: {value!r}')

        return int(value)

    def __read_link(self, path: Path) -> Path:
        try:
            target = path.readlink()
        except FileNotFoundError as exc:
            logger.error("Link %s not found", path)
            raise exceptions.SysfsNotFoundError(f'Link not found: {path}') from exc
        except OSError as exc:
            logger.error("Unable to resolve link %s", path)
            raise exceptions.SysfsError(f'Could not resolve link {path}. Error: {exc}') from exc

        logger.debug("Link: %s -> %s", path, target)
        return target

    def __list_dir(self, path: Path) -> typing.List[str]:
        try:
            entries = [entry.name for entry in path.iterdir()]
        except (FileNotFoundError, NotADirectoryError) as exc:
            logger.error("Directory %s not found", path)
            raise exceptions.SysfsNotFoundError(f'Directory not found: {path}') from exc
        except OSError as exc:
            logger.error("Unable to list %s", path)
            raise exceptions.SysfsError(f'Could not list {path}. Error: {exc}') from exc

        return entries

    @LogDecorators.parse_kmsg
    def __write_fs(self, path: Path, value: str) -> None:
        try:
            path.write_text(value, encoding='utf-8')
        except (FileNotFoundError, NotADirectoryError) as exc:
            logger.error("Unable to write %s -> %s - not found", value, path)
            raise exceptions.SysfsNotFoundError(f'Could not write to {path}: not found') from exc
        except OSError as exc:
            logger.error("Unable to write %s -> %s", value, path)
            raise exceptions.ConfigurationRejectedError(f'Could not write to {path}. Error: {exc}') from exc

        logger.debug("Write: %s -> %s", value, path)

    def __entry_exists(self, address: str, entry: SysfsEntry) -> bool:
        try:
            entry_path = self.__device_path(address) / entry
            return os.path.lexists(entry_path)
        except (exceptions.SriovError, OSError) as exc:
            logger.debug("Unable to check %s of %s: %s", entry, address, exc)
            return False

    def is_device_sriov_capable(self, address: str) -> bool:
        return self.__entry_exists(address, SysfsEntry.TOTAL_VFS)

    def is_sriov_virtual_function(self, address: str) -> bool:
        # physfn links a VF back to its PF
        return self.__entry_exists(address, SysfsEntry.PHYSFN)

    def get_configured_virtual_functions_number(self, address: str) -> int:
        return self.__read_int(self.__existing_device_path(address) / SysfsEntry.NUM_VFS)

    def is_sriov_configured(self, address: str) -> bool:
        try:
            num_vfs = self.get_configured_virtual_functions_number(address)
        except exceptions.SriovError as exc:
            logger.debug("Unable to check SR-IOV configuration of %s: %s", address, exc)
            return False

        return num_vfs > 0

    def get_sriov_virtual_functions_capacity(self, address: str) -> int:
        return self.__read_int(self.__existing_device_path(address) / SysfsEntry.TOTAL_VFS)

    def is_device_exists(self, address: str) -> bool:
        return self.__device_path(address).is_dir()

    def get_net_interfaces_names(self, address: str) -> typing.List[str]:
        net_path = self.__device_path(address) / SysfsEntry.NET
        return sorted(self.__list_dir(net_path))

    def create_virtual_functions(self, address: str, count: int) -> None:
        """Enable a requested number of VFs.
        Capacity (sriov_totalvfs) is enforced by the kernel - rejected write raises ConfigurationRejectedError.
        The same applies to a change from one non-zero count to another, which the kernel refuses with EBUSY.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            logger.error("Invalid number of VFs requested: %r", count)
            raise exceptions.InvalidArgumentError(f'Number of VFs must be a positive integer, got: {count!r}')

        device_path = self.__existing_device_path(address)
        logger.info("[%s] Enable %s VFs", device_path.name, count)
        self.__write_fs(device_path / SysfsEntry.NUM_VFS, str(count))

    def get_virtual_functions_list(self, address: str) -> typing.List[str]:
        """Return VF addresses ordered by N of the PF's virtfnN links."""
        device_path = self.__existing_device_path(address)

        virtfns: typing.List[typing.Tuple[int, str]] = []
        for entry_name in self.__list_dir(device_path):
            vf_index = get_virtfn_index(entry_name)
            if vf_index is None:
                continue

            # virtfnN is a symlink - the last part of its target is the VF address
            vf_address = self.__read_link(device_path / entry_name).name
            virtfns.append((vf_index, vf_address))

        return [vf_address for _, vf_address in sorted(virtfns)]

    def get_iommu_group_number(self, address: str) -> int:
        group_link = self.__existing_device_path(address) / SysfsEntry.IOMMU_GROUP
        group_name = self.__read_link(group_link).name
        if not DECIMAL_PATTERN.fullmatch(group_name):
            logger.error("Invalid IOMMU group in %s: %r", group_link, group_name)
            raise exceptions.SysfsParseError(f'Invalid IOMMU group in {group_link}: {group_name!r}')

        return int(group_name)

    def get_iommu_group_devices(self, group_number: int) -> typing.List[str]:
        """Return addresses of devices in a given IOMMU group, sorted lexically.
        Entries are not resolved, only their names are used.
        """
        if isinstance(group_number, bool) or not isinstance(group_number, int) or group_number < 0:
            logger.error("Invalid IOMMU group number: %r", group_number)
            raise exceptions.InvalidArgumentError(f'IOMMU group number must be a non-negative integer, '
                                                  f'got: {group_number!r}')

        devices_path = self.iommu_groups_path / str(group_number) / SysfsEntry.DEVICES
        return sorted(self.__list_dir(devices_path))

    def get_bound_driver(self, address: str) -> str:
        """Return name of the driver bound to a device or empty string if there is none."""
        driver_link = self.__existing_device_path(address) / SysfsEntry.DRIVER
        if not os.path.lexists(driver_link):
            logger.debug("No driver bound to %s", address)
            return ''

        return self.__read_link(driver_link).name

    def unbind_driver(self, address: str) -> None:
        device_path = self.__existing_device_path(address)
        bdf = device_path.name

        driver_name = self.get_bound_driver(bdf)
        if not driver_name:
            logger.debug("[%s] No driver bound - skip unbind", bdf)
            return

        logger.info("[%s] Unbind %s driver", bdf, driver_name)
        self.__write_fs(device_path / SysfsEntry.DRIVER / SysfsEntry.UNBIND, bdf)

    def __driver_path(self, driver_name: str) -> Path:
        if not isinstance(driver_name, str) or driver_name in ('', '.', '..') or '/' in driver_name:
            logger.error("Invalid driver name: %r", driver_name)
            raise exceptions.InvalidArgumentError(f'Invalid driver name: {driver_name!r}')

        return self.pci_drivers_path / driver_name

    def is_driver_exists(self, driver_name: str) -> bool:
        """Check if a driver is registered on the PCI bus (drivers/<name> present)."""
        try:
            return self.__driver_path(driver_name).is_dir()
        except (exceptions.SriovError, OSError) as exc:
            logger.debug("Unable to check driver %r: %s", driver_name, exc)
            return False

    def bind_driver(self, address: str, driver_name: str) -> None:
        device_path = self.__existing_device_path(address)
        bdf = device_path.name

        driver_path = self.__driver_path(driver_name)
        if not driver_path.is_dir():
            logger.error("Driver %s not found: %s", driver_name, driver_path)
            raise exceptions.SysfsNotFoundError(f'Driver {driver_name} not found: {driver_path}')

        logger.info("[%s] Bind %s driver", bdf, driver_name)
        self.__write_fs(driver_path / SysfsEntry.BIND, bdf)

    def set_driver_override(self, address: str, driver_name: str) -> None:
        """Restrict a device to a given driver on next bind.
        Drivers without an ID table (vfio-pci) accept only devices with driver_override set.
        """
        device_path = self.__existing_device_path(address)
        self.__driver_path(driver_name)

        logger.debug("[%s] Driver override: %s", device_path.name, driver_name)
        self.__write_fs(device_path / SysfsEntry.DRIVER_OVERRIDE, driver_name)
