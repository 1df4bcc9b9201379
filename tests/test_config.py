# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import json
from pathlib import Path

import pytest

from sriovfs import exceptions
from sriovfs.configurators.sysfs_config import (SriovfsConfig,
                                                SriovfsConfigurator,
                                                SysfsPathsConfig)
from sriovfs.providers.sysfs import SysfsSriovProvider


def write_config(path: Path, content) -> Path:
    config_file = path / 'sriovfs_config.json'
    config_file.write_text(content if isinstance(content, str) else json.dumps(content), encoding='utf-8')
    return config_file


class TestSriovfsConfigurator:
    def test_full_config(self, tmp_path):
        config_file = write_config(tmp_path, {
            'sysfs': {
                'pci_devices_path': '/fake/devices',
                'pci_drivers_path': '/fake/drivers',
                'iommu_groups_path': '/fake/iommu_groups',
            },
            'logging': {'kmsg_path': '/dev/kmsg'},
        })

        configurator = SriovfsConfigurator(config_file)
        assert configurator.get_sysfs_config() == SysfsPathsConfig('/fake/devices', '/fake/drivers',
                                                                   '/fake/iommu_groups')
        assert configurator.get_kmsg_path() == '/dev/kmsg'

    def test_defaults(self, tmp_path):
        configurator = SriovfsConfigurator(write_config(tmp_path, {}))
        assert configurator.config == SriovfsConfig()
        assert configurator.get_sysfs_config().pci_devices_path == '/sys/bus/pci/devices'
        assert configurator.get_kmsg_path() is None

    def test_partial_sysfs_section(self, tmp_path):
        configurator = SriovfsConfigurator(write_config(tmp_path, {'sysfs': {'pci_devices_path': '/fake'}}))
        assert configurator.get_sysfs_config().pci_devices_path == '/fake'
        assert configurator.get_sysfs_config().pci_drivers_path == '/sys/bus/pci/drivers'

    def test_missing_file(self, tmp_path):
        with pytest.raises(exceptions.SriovConfigError):
            SriovfsConfigurator(tmp_path / 'missing.json')

    @pytest.mark.parametrize('content', [
        '{"sysfs": ',
        '[]',
        {'sysfs': []},
        {'sysfs': {'pci_devices_path': 1}},
        {'logging': {'kmsg_path': False}},
    ])
    def test_invalid_config(self, tmp_path, content):
        with pytest.raises(exceptions.SriovConfigError):
            SriovfsConfigurator(write_config(tmp_path, content))

    def test_shipped_sample(self, pytestconfig):
        configurator = SriovfsConfigurator(pytestconfig.rootpath / 'sriovfs_config.json')
        assert configurator.config == SriovfsConfig()

    def test_provider_from_config(self, tmp_path, sysfs_tree):
        config_file = write_config(tmp_path, {
            'sysfs': {
                'pci_devices_path': str(sysfs_tree.roots.pci_devices_path),
                'pci_drivers_path': str(sysfs_tree.roots.pci_drivers_path),
                'iommu_groups_path': str(sysfs_tree.roots.iommu_groups_path),
            },
        })
        provider = SysfsSriovProvider.from_config(SriovfsConfigurator(config_file).config)

        sysfs_tree.make_device('0000:01:00.0', sriov_totalvfs='8')
        assert provider.pci_devices_path == sysfs_tree.roots.pci_devices_path
        assert provider.get_sriov_virtual_functions_capacity('01:00.0') == 8
