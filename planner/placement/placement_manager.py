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

import logging

from planner.common.log import log_duration
from planner.exceptions import InfeasibilityError
from planner.hypervisor.datastore import LedgerTransaction
from planner.hypervisor.resources import DiskKind
from planner.placement.disk_placement_manager import AffinityPlaceEngine
from planner.placement.disk_placement_manager import AntiAffinityPlaceEngine
from planner.placement.disk_placement_manager import BisectKind
from planner.placement.disk_placement_manager import BisectPlaceEngine
from planner.placement.disk_placement_manager import CandidateSelector
from planner.placement.reservation import ReservationManager

DEFAULT_BUFFER_SIZE = 512


class HostPlan(object):
    """Outcome of placing the whole batch on one host."""

    def __init__(self, host):
        self.host = host
        self.vms = []
        self.sticky = None
        self.true_bisect = False
        self.pseudo_bisect = False

    def accept(self, vm, bisect):
        self.vms.append(vm)
        if bisect is BisectKind.TRUE:
            self.true_bisect = True
        elif bisect is BisectKind.PSEUDO:
            self.pseudo_bisect = True


class PlacementManager(object):
    """PlacementManager finds, for each candidate host, a placement of a
    batch of VMs on the datastores the host can reach.

    Every host is evaluated against private planning copies of its datastores
    and the reservations made while planning are released before returning,
    so a plan never changes the durable ledger.
    """

    def __init__(self, hosts, buffer_size=DEFAULT_BUFFER_SIZE):
        """
        :type hosts: dict of str to Host
        :param buffer_size: space left free on every datastore
        """
        self._logger = logging.getLogger(__name__)
        self._hosts = hosts
        self.buffer_size = buffer_size
        self._selector = CandidateSelector(buffer_size)
        self._reservation = ReservationManager(hosts)
        self._bisect_placement = BisectPlaceEngine(buffer_size)
        self._affinity_placement = AffinityPlaceEngine(buffer_size)
        self._anti_affinity_placement = AntiAffinityPlaceEngine(buffer_size)

    def feasible_hosts(self, vms, host_names):
        """Hosts whose local and shared capacities cover the whole batch.

        :type vms: list of VMRequest
        :type host_names: list of str
        :rtype: list of str
        """
        shared_size = sum(vm.shared_size() for vm in vms)
        local_size = sum(vm.local_size() for vm in vms)

        feasible = []
        for name in host_names:
            host = self._hosts.get(name)
            if host is None or not host.connected:
                continue
            if host.local_capacity >= local_size and \
                    host.shared_capacity >= shared_size:
                feasible.append(name)

        self._logger.info("Feasible hosts for local %s, shared %s: %s" %
                          (local_size, shared_size, feasible))
        return feasible

    @log_duration
    def plan(self, vms, host_names):
        """Place the batch on every candidate host.

        :type vms: list of VMRequest
        :type host_names: list of str
        :return: host name to the list of placed VM requests, for the hosts
                 that fit every VM of the batch
        :rtype: dict of str to list of VMRequest
        """
        hosts = []
        for name in host_names:
            if name not in self._hosts:
                self._logger.warning("Skipping unknown host %s" % name)
                continue
            hosts.append(self._hosts[name])
        hosts.sort(key=lambda host: host.local_capacity, reverse=True)

        plans = []
        try:
            for host in hosts:
                host.begin_planning()
                host_plan = self._plan_host(host, vms)
                if host_plan is not None:
                    plans.append(host_plan)
        finally:
            for host_plan in plans:
                self._reservation.recovery(host_plan.vms, planning=True)
            for host in hosts:
                host.end_planning()

        if any(p.true_bisect for p in plans):
            for host_plan in plans:
                if host_plan.pseudo_bisect and not host_plan.true_bisect:
                    self._logger.info("Dropping host %s, it only splits data "
                                      "disks on one datastore" %
                                      host_plan.host.name)
            plans = [p for p in plans
                     if p.true_bisect or not p.pseudo_bisect]

        return dict((p.host.name, p.vms) for p in plans)

    def _plan_host(self, host, vms):
        host_plan = HostPlan(host)
        for vm in vms:
            transaction = LedgerTransaction()
            try:
                placed, bisect = self._place_vm(host_plan, vm, transaction)
            except InfeasibilityError as e:
                self._logger.info("%s, rolling back %d reservations" %
                                  (e, len(transaction)))
                transaction.rollback()
                self._reservation.recovery(host_plan.vms, planning=True)
                self._logger.debug("Dropped host %s, planning capacity %s" %
                                   (host.name, host.planning_capacity))
                return None
            transaction.commit()
            host_plan.accept(placed, bisect)
            self._logger.debug("Placed %s on %s, planning capacity %s" %
                               (vm.name, host.name, host.planning_capacity))
        return host_plan

    def _place_vm(self, host_plan, vm, transaction):
        placed = vm.copy()
        placed.host_name = host_plan.host.name
        self._place_system(host_plan, placed, transaction)
        bisect = self._place_data(host_plan.host, placed, transaction)
        return placed, bisect

    def _place_system(self, host_plan, vm, transaction):
        """Place system and swap, together on one datastore when possible."""
        host = host_plan.host
        system_size = vm.system_disks.size + vm.req_mem
        swap_size = vm.swap_disks.size
        candidates = self._selector.candidates(vm.system_disks, host,
                                               vm.datastore_pattern,
                                               host_plan.sticky)

        total = sum(ds.headroom(self.buffer_size) for ds in candidates)
        if total < system_size + swap_size:
            raise InfeasibilityError(
                vm.name, host.name,
                "system and swap need %s, datastores hold %s" %
                (system_size + swap_size, total))

        system_done = False
        swap_done = False
        for ds in candidates:
            headroom = ds.headroom(self.buffer_size)
            if not system_done and not swap_done and \
                    headroom >= system_size + swap_size:
                self._place_volume(vm, DiskKind.SYSTEM, ds, transaction)
                self._place_volume(vm, DiskKind.SWAP, ds, transaction)
                host_plan.sticky = ds.name
                return
            if not system_done and headroom >= system_size:
                self._place_volume(vm, DiskKind.SYSTEM, ds, transaction)
                system_done = True
            elif not swap_done and headroom >= swap_size:
                self._place_volume(vm, DiskKind.SWAP, ds, transaction)
                swap_done = True
            if system_done and swap_done:
                return

        raise InfeasibilityError(vm.name, host.name,
                                 "no datastore holds the system or swap disk")

    def _place_volume(self, vm, kind, datastore, transaction):
        volume = vm.volume_add(kind, datastore, vm.disk(kind).size)
        transaction.reserve(datastore, vm.volume_charge(volume))

    def _place_data(self, host, vm, transaction):
        data = vm.data_disks
        if data.size == 0:
            return BisectKind.NONE

        candidates = self._selector.candidates(data, host,
                                               vm.datastore_pattern)
        if data.bisect:
            engine = self._bisect_placement
        elif data.affinity:
            engine = self._affinity_placement
        else:
            engine = self._anti_affinity_placement

        result = engine.place(vm, candidates, transaction)
        if not result.ok:
            raise InfeasibilityError(
                vm.name, host.name,
                "data disk of %s does not fit (%s)" %
                (data.size, result.result.name))
        return result.bisect
