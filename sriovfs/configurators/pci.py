# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import enum
import logging
import re
import typing

from sriovfs import exceptions

logger = logging.getLogger('sriovfs.PciAddress')

DEFAULT_PCI_DOMAIN = '0000'

# [domain:]bus:device.function, e.g. 0000:01:00.0 or 01:00.0
# Function separator may also be ':' (legacy 0000:01:00:0 notation)
PCI_ADDRESS_PATTERN = re.compile(
    r'^(?:(?P<domain>[0-9a-fA-F]{4}):)?'
    r'(?P<bus>[0-9a-fA-F]{2}):'
    r'(?P<device>[01][0-9a-fA-F])[.:]'
    r'(?P<function>[0-7])$')

# virtfnN is a symlink from PF to its N-th VF directory
VIRTFN_PATTERN = re.compile(r'^virtfn(?P<vf_index>\d+)$')


class SysfsEntry(str, enum.Enum):
    TOTAL_VFS = 'sriov_totalvfs'
    NUM_VFS = 'sriov_numvfs'
    PHYSFN = 'physfn'
    NET = 'net'
    IOMMU_GROUP = 'iommu_group'
    DRIVER = 'driver'
    BIND = 'bind'
    UNBIND = 'unbind'
    DEVICES = 'devices'
    DRIVER_OVERRIDE = 'driver_override'

    def __str__(self) -> str:
        return str.__str__(self)


def is_valid_pci_address(address: str) -> bool:
    """Check a given string against the PCI address grammar."""
    if not isinstance(address, str):
        return False
    return PCI_ADDRESS_PATTERN.fullmatch(address) is not None


def normalize_pci_address(address: str) -> str:
    """Return long form of a PCI address (prepend default domain to the short form)."""
    match: typing.Optional[re.Match] = None
    if isinstance(address, str):
        match = PCI_ADDRESS_PATTERN.fullmatch(address)

    if not match:
        logger.error("Invalid PCI address: %r", address)
        raise exceptions.InvalidPciAddressError(f'Invalid PCI address: {address!r}')

    if match.group('domain') is None:
        return f'{DEFAULT_PCI_DOMAIN}:{address}'

    return address


def get_virtfn_index(entry_name: str) -> typing.Optional[int]:
    """Return N of a virtfnN entry name or None if the name does not match."""
    index_match = VIRTFN_PATTERN.fullmatch(entry_name)
    if index_match:
        return int(index_match.group('vf_index'))

    return None
