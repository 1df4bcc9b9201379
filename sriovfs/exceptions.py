# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

class SriovError(Exception):
    pass


# Caller input errors:
class InvalidPciAddressError(SriovError):
    pass


class InvalidArgumentError(SriovError):
    pass


# Sysfs errors:
class SysfsError(SriovError):
    pass


class SysfsNotFoundError(SysfsError):
    pass


class SysfsParseError(SysfsError):
    pass


class ConfigurationRejectedError(SysfsError):
    """Kernel refused a sysfs write (e.g. more VFs requested than sriov_totalvfs)."""


# Generic errors:
class SriovConfigError(SriovError):
    pass
