# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import abc
import typing


class SriovProviderInterface(abc.ABC):

    @abc.abstractmethod
    def is_device_sriov_capable(self, address: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def is_sriov_virtual_function(self, address: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get_configured_virtual_functions_number(self, address: str) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def is_sriov_configured(self, address: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get_sriov_virtual_functions_capacity(self, address: str) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def is_device_exists(self, address: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get_net_interfaces_names(self, address: str) -> typing.List[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def create_virtual_functions(self, address: str, count: int) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_virtual_functions_list(self, address: str) -> typing.List[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_iommu_group_number(self, address: str) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def get_iommu_group_devices(self, group_number: int) -> typing.List[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_bound_driver(self, address: str) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def unbind_driver(self, address: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def bind_driver(self, address: str, driver_name: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def is_driver_exists(self, driver_name: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def set_driver_override(self, address: str, driver_name: str) -> None:
        raise NotImplementedError
