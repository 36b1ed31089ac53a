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

from planner.exceptions import ConfigurationError
from planner.hypervisor.datastore import Host
from planner.hypervisor.datastore import StoragePool
from planner.hypervisor.resources import DiskKind
from planner.hypervisor.resources import ProvisionMode
from planner.hypervisor.resources import Transport
from planner.hypervisor.resources import Volume
from planner.hypervisor.resources import VMRequest
from planner.placement.reservation import ReservationManager


class TestReservationManager(unittest.TestCase):

    def setUp(self):
        self.local = StoragePool("l1", free_space=1000)
        self.shared = StoragePool("s1", shared=True, free_space=4000)
        self.h1 = Host("h1", local={"l1": self.local},
                       shared={"s1": self.shared})
        self.h2 = Host("h2", shared={"s1": self.shared})
        self.hosts = {"h1": self.h1, "h2": self.h2}
        self.manager = ReservationManager(self.hosts)

    def _vm(self, name="vm1", host="h1"):
        vm = VMRequest(name, vm_id="id-%s" % name, req_mem=64)
        vm.volume_add(DiskKind.SYSTEM, self.local, 100)
        vm.volume_add(DiskKind.SWAP, self.local, 50)
        vm.volume_add(DiskKind.DATA, self.shared, 300)
        vm.host_name = host
        return vm

    def test_commission_decommission(self):
        vms = [self._vm("vm1"), self._vm("vm2")]

        assert_that(self.manager.commission(vms), is_(1028))
        assert_that(self.local.reserved_space, is_(428))
        assert_that(self.shared.reserved_space, is_(600))
        # the shared datastore is the same pool for every host
        assert_that(self.h2.shared_capacity, is_(3400))

        assert_that(self.manager.decommission(vms), is_(1028))
        assert_that(self.local.reserved_space, is_(0))
        assert_that(self.shared.reserved_space, is_(0))

    def test_decommission_twice_is_clamped(self):
        vms = [self._vm()]
        self.manager.commission(vms)
        self.manager.decommission(vms)

        assert_that(self.manager.decommission(vms), is_(0))
        assert_that(self.local.effective_free, is_(1000))
        assert_that(self.local.reserved_space, is_(0))

    def test_empty(self):
        assert_that(self.manager.commission([]), is_(0))
        assert_that(self.manager.decommission([]), is_(0))

    def test_recovery_restores_capacity(self):
        before = self.h1.capacity
        vms = [self._vm()]
        self.manager.commission(vms)

        self.manager.recovery(vms)
        assert_that(self.h1.capacity, is_(before))

    def test_recovery_on_planning_view(self):
        self.h1.begin_planning()
        plan_local = self.h1.plan_local["l1"]
        plan_local.reserve(214)
        before = self.h1.planning_capacity

        vm = VMRequest("vm1", req_mem=64)
        vm.volume_add(DiskKind.SYSTEM, plan_local, 100)
        vm.volume_add(DiskKind.SWAP, plan_local, 50)
        vm.host_name = "h1"
        self.manager.recovery([vm], planning=True)

        assert_that(self.h1.planning_capacity, is_(before + 214))
        assert_that(self.local.reserved_space, is_(0))

    def test_vm_without_host(self):
        vm = self._vm(host=None)
        self.assertRaises(ConfigurationError, self.manager.commission, [vm])

    def test_unknown_host(self):
        vm = self._vm(host="h9")
        self.assertRaises(ConfigurationError, self.manager.commission, [vm])

    def test_unknown_datastore_reserves_nothing(self):
        vm = self._vm(host="h2")

        self.assertRaises(ConfigurationError, self.manager.commission, [vm])
        assert_that(self.shared.reserved_space, is_(0))
        assert_that(self.local.reserved_space, is_(0))

    def test_shared_pool_across_hosts_counted_once(self):
        vm1 = VMRequest("vm1", vm_id="id-1")
        vm1.volume_add(DiskKind.DATA, self.shared, 100)
        vm1.host_name = "h1"
        vm2 = VMRequest("vm2", vm_id="id-2")
        vm2.volume_add(DiskKind.DATA, self.shared, 100)
        vm2.host_name = "h2"

        assert_that(self.manager.commission([vm1, vm2]), is_(200))
        assert_that(self.shared.reserved_space, is_(200))
        assert_that(self.manager.decommission([vm1, vm2]), is_(200))

    def test_volume_path_on_other_datastore(self):
        vm = VMRequest("vm1", vm_id="id-1")
        vm.data_disks.add_volume(Volume(
            DiskKind.DATA, "id-1", ProvisionMode.THIN,
            "[s1] vm1/data0.vmdk", 100, "l1", Transport.PVSCSI, 0))
        vm.host_name = "h1"

        self.assertRaises(ConfigurationError, self.manager.commission, [vm])
        assert_that(self.local.reserved_space, is_(0))

    def test_volume_path_without_datastore(self):
        vm = VMRequest("vm1", vm_id="id-1")
        vm.data_disks.add_volume(Volume(
            DiskKind.DATA, "id-1", ProvisionMode.THIN,
            "vm1/data0.vmdk", 100, "l1", Transport.PVSCSI, 0))
        vm.host_name = "h1"

        self.assertRaises(ConfigurationError, self.manager.commission, [vm])
