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

from planner.common.path_util import DatastorePathException
from planner.common.path_util import datastore_name_from_path
from planner.exceptions import ConfigurationError


class ReservationManager(object):
    """ReservationManager moves placed volumes in and out of the ledger.

    A commissioned VM keeps its space reserved on the datastores until it is
    decommissioned.
    """

    def __init__(self, hosts):
        """
        :type hosts: dict of str to Host
        """
        self._logger = logging.getLogger(__name__)
        self._hosts = hosts

    def commission(self, vms):
        """Reserve the volumes of placed VMs on the durable ledger.

        :type vms: list of VMRequest
        :return: free space consumed on the distinct datastores touched
        :raise ConfigurationError: VM without host or unknown datastore
        """
        return self._update(vms, reserve=True)

    def decommission(self, vms):
        """Release what commission reserved.

        :return: free space released on the distinct datastores touched
        """
        return self._update(vms, reserve=False)

    def recovery(self, vms, planning=False):
        """Undo the ledger effect of placed VMs.

        With planning set the release applies to the planning copies of the
        host datastores instead of the durable ones.
        """
        charges = self._charges(vms, planning)
        for datastore, charge in charges:
            datastore.release(charge)

    def _update(self, vms, reserve):
        if not vms:
            return 0

        charges = self._charges(vms, planning=False)
        pools = self._distinct_pools(charges)
        before = sum(datastore.effective_free for datastore in pools)

        for datastore, charge in charges:
            if reserve:
                datastore.reserve(charge)
            else:
                datastore.release(charge)

        after = sum(datastore.effective_free for datastore in pools)
        self._logger.info("%s %d VMs on %s, free space %s -> %s" %
                          ("Commissioned" if reserve else "Decommissioned",
                           len(vms), [datastore.name for datastore in pools],
                           before, after))
        return abs(before - after)

    def _distinct_pools(self, charges):
        # A shared pool is one object seen by several hosts
        pools = []
        seen = set()
        for datastore, _ in charges:
            if id(datastore) not in seen:
                seen.add(id(datastore))
                pools.append(datastore)
        return pools

    def _charges(self, vms, planning):
        """Resolve every volume to its datastore before touching any of them.
        """
        charges = []
        for vm in vms:
            if not vm.host_name:
                raise ConfigurationError("VM %s is not placed on a host" %
                                         vm.name)
            host = self._hosts.get(vm.host_name)
            if host is None:
                raise ConfigurationError("VM %s is placed on unknown host %s"
                                         % (vm.name, vm.host_name))
            for volume in vm.volumes():
                self._check_path(volume)
                datastore = host.find_datastore(volume.datastore_name,
                                                planning)
                if datastore is None:
                    raise ConfigurationError(
                        "Datastore %s of volume %s is not visible from host %s"
                        % (volume.datastore_name, volume.fullpath, host.name))
                charges.append((datastore, vm.volume_charge(volume)))
        return charges

    def _check_path(self, volume):
        try:
            name = datastore_name_from_path(volume.fullpath)
        except DatastorePathException as e:
            raise ConfigurationError(str(e))
        if name != volume.datastore_name:
            raise ConfigurationError("Volume %s is not on datastore %s" %
                                     (volume.fullpath, volume.datastore_name))
