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

"""Capacity ledger: datastores and the hosts that see them."""

import logging

logger = logging.getLogger(__name__)


class StoragePool(object):
    """StoragePool tracks the capacity of one datastore.

    free_space is what the inventory last reported; reserved_space is what
    planning and commission consumed since then and the inventory does not
    know about yet.
    """

    def __init__(self, name, shared=False, total_space=0, free_space=0,
                 reserved_space=0):
        self.name = name
        self.shared = shared
        self.total_space = total_space
        self.free_space = free_space
        self.reserved_space = reserved_space

    @property
    def effective_free(self):
        real_free = self.free_space - self.reserved_space
        if real_free < 0:
            return 0
        return real_free

    def headroom(self, buffer_size=0):
        """Space usable once the safety buffer is left untouched."""
        return max(0, self.effective_free - buffer_size)

    def reserve(self, amount):
        self.reserved_space += amount

    def release(self, amount):
        if amount > self.reserved_space:
            logger.warning("Releasing %s from datastore %s holding only %s "
                           "reserved, clamping to 0" %
                           (amount, self.name, self.reserved_space))
            self.reserved_space = 0
            return
        self.reserved_space -= amount

    def copy(self):
        return StoragePool(self.name, self.shared, self.total_space,
                           self.free_space, self.reserved_space)

    def __repr__(self):
        return "StoragePool(name=%s, shared=%s, free=%s, reserved=%s)" % (
            self.name, self.shared, self.free_space, self.reserved_space)


class Host(object):
    """A hypervisor host and the datastores it can reach.

    local and shared hold the durable ledger. plan_local and plan_share are
    private copies used while a single planning pass evaluates this host, so
    the speculative reservations made for one host never show up when the
    next host is evaluated.
    """

    CONNECTED = "connected"

    def __init__(self, name, cluster=None, connection_state=CONNECTED,
                 local=None, shared=None):
        self.name = name
        self.cluster = cluster
        self.connection_state = connection_state
        self.local = local if local is not None else {}
        self.shared = shared if shared is not None else {}
        self.plan_local = {}
        self.plan_share = {}

    @property
    def connected(self):
        return self.connection_state == self.CONNECTED

    @property
    def local_capacity(self):
        return sum(ds.effective_free for ds in self.local.values())

    @property
    def shared_capacity(self):
        return sum(ds.effective_free for ds in self.shared.values())

    @property
    def capacity(self):
        return self.local_capacity + self.shared_capacity

    @property
    def planning_capacity(self):
        return sum(ds.effective_free for ds in self.plan_local.values()) + \
            sum(ds.effective_free for ds in self.plan_share.values())

    def add_datastore(self, datastore):
        if datastore.shared:
            self.shared[datastore.name] = datastore
        else:
            self.local[datastore.name] = datastore

    def begin_planning(self):
        self.plan_local = dict((name, ds.copy())
                               for name, ds in self.local.items())
        self.plan_share = dict((name, ds.copy())
                               for name, ds in self.shared.items())

    def end_planning(self):
        self.plan_local = {}
        self.plan_share = {}

    def datastores(self, shared, planning=False):
        if planning:
            return self.plan_share if shared else self.plan_local
        return self.shared if shared else self.local

    def find_datastore(self, name, planning=False):
        """Look a datastore up by name in the local then the shared view."""
        for shared in (False, True):
            datastores = self.datastores(shared, planning)
            if name in datastores:
                return datastores[name]
        return None

    def __repr__(self):
        return "Host(name=%s, state=%s, local=%s, shared=%s)" % (
            self.name, self.connection_state, sorted(self.local),
            sorted(self.shared))


class LedgerTransaction(object):
    """Compensation list of one placement attempt.

    Every reservation goes through reserve(); rollback() releases all of
    them in reverse order.
    """

    def __init__(self):
        self._entries = []

    def reserve(self, datastore, amount):
        datastore.reserve(amount)
        self._entries.append((datastore, amount))

    def rollback(self):
        while self._entries:
            datastore, amount = self._entries.pop()
            datastore.release(amount)

    def commit(self):
        self._entries = []

    def __len__(self):
        return len(self._entries)
