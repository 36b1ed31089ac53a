# Copyright 2015 VMware, Inc. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License.  You may obtain a copy
# of the License at http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, without
# warranties or conditions of any kind, EITHER EXPRESS OR IMPLIED.  See the
# License for then specific language governing permissions and limitations
# under the License.

import unittest

from hamcrest import *  # noqa

from planner.hypervisor.datastore import StoragePool
from planner.hypervisor.disk_manager import ERROR
from planner.hypervisor.disk_manager import SUCCESS
from planner.hypervisor.fake.disk_manager import FakeVolumeProvisioner
from planner.hypervisor.resources import DiskKind
from planner.hypervisor.resources import VMRequest


class TestFakeVolumeProvisioner(unittest.TestCase):

    def setUp(self):
        self.vm = VMRequest("vm1", vm_id="id-1")
        self.ds = StoragePool("ds1", free_space=1000)

    def test_capacity_checked(self):
        provisioner = FakeVolumeProvisioner(capacity_map={"ds1": 100})
        first = self.vm.volume_add(DiskKind.DATA, self.ds, 80)
        second = self.vm.volume_add(DiskKind.DATA, self.ds, 30)

        assert_that(provisioner.create_volume(first)["state"], is_(SUCCESS))
        assert_that(provisioner.create_volume(second)["state"], is_(ERROR))
        assert_that(provisioner.used_storage("ds1"), is_(80))

    def test_create_twice(self):
        provisioner = FakeVolumeProvisioner()
        volume = self.vm.volume_add(DiskKind.SWAP, self.ds, 10)

        provisioner.create_volume(volume)
        result = provisioner.create_volume(volume)
        assert_that(result, is_({"state": ERROR, "message": "EEXISTS"}))

    def test_destroy_missing(self):
        provisioner = FakeVolumeProvisioner()
        volume = self.vm.volume_add(DiskKind.SWAP, self.ds, 10)

        result = provisioner.destroy_volume(volume)
        assert_that(result, is_({"state": ERROR, "message": "ENOENT"}))
