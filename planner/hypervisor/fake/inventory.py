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

"""Fake inventory kept in memory."""

import copy

from planner.hypervisor.datastore import Host
from planner.hypervisor.inventory import InventorySource
from planner.hypervisor.inventory import filter_clusters


class FakeInventorySource(InventorySource):

    def __init__(self, snapshot=None):
        self._clusters = copy.deepcopy(snapshot) if snapshot else []
        self.fetch_count = 0

    def add_host(self, cluster, name, datastores=None,
                 connection_state=Host.CONNECTED):
        """Add a host to a cluster, creating the cluster when needed.

        :param datastores: list of (name, shared, free_space) tuples
        """
        hosts = self._cluster(cluster)["hosts"]
        hosts.append({
            "name": name,
            "connection_state": connection_state,
            "datastores": [{"name": ds_name,
                            "shared": shared,
                            "total_space": free,
                            "free_space": free}
                           for ds_name, shared, free in datastores or []],
        })

    def set_free_space(self, datastore, free_space):
        """Change what the next fetch reports for a datastore everywhere."""
        for cluster in self._clusters:
            for host in cluster["hosts"]:
                for ds in host["datastores"]:
                    if ds["name"] == datastore:
                        ds["free_space"] = free_space

    def fetch(self, clusters=None):
        self.fetch_count += 1
        return copy.deepcopy(filter_clusters(self._clusters, clusters))

    def _cluster(self, name):
        for cluster in self._clusters:
            if cluster["name"] == name:
                return cluster
        cluster = {"name": name, "hosts": []}
        self._clusters.append(cluster)
        return cluster
