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

import abc
import fnmatch
import logging

import yaml

from planner.exceptions import ConfigurationError
from planner.hypervisor.datastore import Host
from planner.hypervisor.datastore import StoragePool

logger = logging.getLogger(__name__)


class InventorySource(metaclass=abc.ABCMeta):
    """Supplies inventory snapshots of the managed clusters.

    A snapshot is a list of clusters:

        [{"name": "cluster1",
          "hosts": [{"name": "esx-1",
                     "connection_state": "connected",
                     "datastores": [{"name": "local-1",
                                     "shared": False,
                                     "total_space": 2048,
                                     "free_space": 1024}]}]}]
    """

    @abc.abstractmethod
    def fetch(self, clusters=None):
        """Fetch the snapshot of the named clusters, all when None.

        :type clusters: list of str
        :rtype: list of dict
        """
        pass


class YamlInventorySource(InventorySource):
    """Inventory snapshot stored in a yaml file."""

    def __init__(self, path):
        self._path = path

    def fetch(self, clusters=None):
        with open(self._path, "r") as f:
            content = yaml.safe_load(f)

        if isinstance(content, dict):
            content = content.get("clusters")
        if not isinstance(content, list):
            raise ConfigurationError("Inventory %s has no cluster list" %
                                     self._path)

        return filter_clusters(content, clusters)


def filter_clusters(snapshot, clusters):
    if clusters is None:
        return list(snapshot)
    return [c for c in snapshot if c.get("name") in clusters]


def _matches(name, pattern):
    if not pattern:
        return True
    return fnmatch.fnmatchcase(name, pattern)


def load_hosts(snapshot, hosts=None, share_pattern=None, local_pattern=None):
    """Build the host and datastore graph of an inventory snapshot.

    A shared datastore becomes one StoragePool referenced by every host that
    reaches it, so a reservation made through any of them is seen by all.
    Local datastores are private to their host even when several hosts use
    the same name.

    :param hosts: host names to keep, all when None
    :param share_pattern: wildcard shared datastores must match
    :param local_pattern: wildcard local datastores must match
    :rtype: dict of str to Host
    :raise ConfigurationError: malformed snapshot, or a datastore name that
                               is shared on one host and local on another
    """
    result = {}
    shared_pools = {}
    local_names = set()

    for cluster in snapshot:
        cluster_name = cluster.get("name")
        for host_info in cluster.get("hosts") or []:
            host_name = host_info.get("name")
            if not host_name:
                raise ConfigurationError("Host without a name in cluster %s" %
                                         cluster_name)
            if hosts is not None and host_name not in hosts:
                continue

            host = Host(host_name, cluster_name,
                        host_info.get("connection_state", Host.CONNECTED))

            for ds_info in host_info.get("datastores") or []:
                ds_name = ds_info.get("name")
                if not ds_name:
                    raise ConfigurationError(
                        "Datastore without a name on host %s" % host_name)
                shared = bool(ds_info.get("shared", False))

                if shared:
                    if ds_name in local_names:
                        raise ConfigurationError(
                            "Datastore %s is both local and shared" % ds_name)
                    if ds_name not in shared_pools:
                        shared_pools[ds_name] = _pool(ds_name, True, ds_info)
                    if not _matches(ds_name, share_pattern):
                        continue
                    host.add_datastore(shared_pools[ds_name])
                else:
                    if ds_name in shared_pools:
                        raise ConfigurationError(
                            "Datastore %s is both local and shared" % ds_name)
                    local_names.add(ds_name)
                    if not _matches(ds_name, local_pattern):
                        continue
                    host.add_datastore(_pool(ds_name, False, ds_info))

            logger.debug("Loaded %s" % host)
            result[host_name] = host

    return result


def _pool(name, shared, ds_info):
    return StoragePool(name, shared,
                       total_space=ds_info.get("total_space", 0),
                       free_space=ds_info.get("free_space", 0))
