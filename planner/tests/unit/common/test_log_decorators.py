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
from mock import *  # noqa

from planner.hypervisor.datastore import Host
from planner.hypervisor.datastore import StoragePool
from planner.hypervisor.disk_manager import VolumeManager
from planner.hypervisor.fake.disk_manager import FakeVolumeProvisioner
from planner.hypervisor.resources import DiskKind
from planner.hypervisor.resources import VMRequest
from planner.placement.placement_manager import PlacementManager


class TestLogDecorators(unittest.TestCase):

    def setUp(self):
        self.provisioner = FakeVolumeProvisioner()
        self.provisioner._logger = MagicMock()
        self.volume_manager = VolumeManager(self.provisioner)
        self.volume_manager._logger = MagicMock()
        self.vm = VMRequest("vm1", vm_id="id-1")
        self.vm.host_name = "h1"

    @patch("time.time")
    def test_create_volumes_logs_vm_and_duration(self, time_fn):
        time_fn.side_effect = [1000, 2000]

        self.volume_manager.create_volumes(self.vm)

        assert_that(self.volume_manager._logger.debug.call_args_list,
                    is_([call("create_volumes: VMRequest(name=vm1, host=h1) "
                              "took 1000")]))

    @patch("time.time")
    def test_failed_delete_still_logs_duration(self, time_fn):
        self.vm.volume_add(DiskKind.SWAP, StoragePool("ds1"), 10)
        time_fn.side_effect = [1000, 1500]

        result = self.volume_manager.delete_volumes(self.vm)

        assert_that(result.success, is_(False))
        assert_that(self.volume_manager._logger.warning.call_count, is_(1))
        assert_that(self.volume_manager._logger.debug.call_args_list,
                    is_([call("delete_volumes: VMRequest(name=vm1, host=h1) "
                              "took 500")]))

    @patch("time.time")
    def test_plan_logs_duration(self, time_fn):
        time_fn.side_effect = [10, 12.5]
        manager = PlacementManager({}, buffer_size=0)
        manager._logger = MagicMock()

        assert_that(manager.plan([], []), is_({}))

        manager._logger.info.assert_called_once_with("%s took %fs", "plan",
                                                     2.5)

    @patch("time.time")
    def test_plan_logs_duration_on_exception(self, time_fn):
        time_fn.side_effect = [10, 11]
        host = Host("h1", local={"l1": StoragePool("l1", free_space=100)})
        manager = PlacementManager({"h1": host}, buffer_size=0)
        manager._logger = MagicMock()
        manager._plan_host = MagicMock(side_effect=ValueError())

        self.assertRaises(ValueError, manager.plan, [self.vm], ["h1"])

        manager._logger.info.assert_called_once_with("%s took %fs", "plan", 1)
        assert_that(host.plan_local, is_({}))
