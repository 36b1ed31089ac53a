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

from planner.common.request_id import request_context
from planner.exceptions import ConfigurationError
from planner.hypervisor.disk_manager import VolumeManager
from planner.hypervisor.inventory import load_hosts
from planner.placement.placement_manager import DEFAULT_BUFFER_SIZE
from planner.placement.placement_manager import PlacementManager
from planner.placement.reservation import ReservationManager


class PlacementSession(object):
    """Owns the host and datastore graph built from one inventory snapshot
    and exposes planning, reservation and realization on top of it.

    A session is single threaded: callers must not plan, commission or
    realize concurrently on the same session.
    """

    def __init__(self, inventory, buffer_size=DEFAULT_BUFFER_SIZE,
                 provisioner=None, clusters=None):
        """
        :type inventory: InventorySource
        :param buffer_size: space left free on every datastore
        :type provisioner: VolumeProvisioner
        :param clusters: clusters to load, all when None
        """
        self._logger = logging.getLogger(__name__)
        self._inventory = inventory
        self._buffer_size = buffer_size
        self._clusters = clusters
        self._hosts = {}
        self._volume_manager = None
        if provisioner is not None:
            self._volume_manager = VolumeManager(provisioner)
        self.refresh()

    @property
    def hosts(self):
        return self._hosts

    def refresh(self, clusters=None, share_pattern=None, local_pattern=None):
        """Fetch a new snapshot and rebuild hosts and datastores.

        Commissioned space stays reserved on the datastores that are still
        attached to the same host after the refresh.
        """
        if clusters is not None:
            self._clusters = clusters
        snapshot = self._inventory.fetch(self._clusters)
        hosts = load_hosts(snapshot,
                           share_pattern=share_pattern,
                           local_pattern=local_pattern)
        self._carry_reservations(self._hosts, hosts)
        self._hosts = hosts
        self._placement_manager = PlacementManager(self._hosts,
                                                   self._buffer_size)
        self._reservation_manager = ReservationManager(self._hosts)
        self._logger.info("Loaded %d hosts from clusters %s" %
                          (len(self._hosts), self._clusters or "all"))

    def _carry_reservations(self, old_hosts, new_hosts):
        # shared pools are one object per graph, reserve them once
        seen = set()
        for name, host in new_hosts.items():
            old_host = old_hosts.get(name)
            if old_host is None:
                continue
            for shared in (False, True):
                old_datastores = old_host.datastores(shared)
                for ds_name, datastore in host.datastores(shared).items():
                    old = old_datastores.get(ds_name)
                    if old is None or not old.reserved_space or \
                            id(datastore) in seen:
                        continue
                    seen.add(id(datastore))
                    datastore.reserve(old.reserved_space)

    def feasible_hosts(self, vms, hosts, share_pattern=None,
                       local_pattern=None):
        """Hosts with enough local and shared capacity for the batch.

        Giving either datastore pattern refreshes the inventory first.
        """
        with request_context():
            if share_pattern or local_pattern:
                self.refresh(share_pattern=share_pattern,
                             local_pattern=local_pattern)
            return self._placement_manager.feasible_hosts(vms, hosts)

    def plan(self, vms, hosts):
        with request_context():
            return self._placement_manager.plan(vms, hosts)

    def commission(self, vms):
        with request_context():
            return self._reservation_manager.commission(vms)

    def decommission(self, vms):
        with request_context():
            return self._reservation_manager.decommission(vms)

    def create_volumes(self, vm):
        with request_context():
            return self._realization().create_volumes(vm)

    def delete_volumes(self, vm):
        with request_context():
            return self._realization().delete_volumes(vm)

    def _realization(self):
        if self._volume_manager is None:
            raise ConfigurationError("Session has no volume provisioner")
        return self._volume_manager
