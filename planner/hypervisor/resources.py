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

import enum

from planner.common.path_util import volume_path
from planner.exceptions import ConfigurationError


@enum.unique
class DiskKind(enum.Enum):
    SYSTEM = "system"
    SWAP = "swap"
    DATA = "data"


@enum.unique
class ProvisionMode(enum.Enum):
    THIN = "thin"
    THICK_EAGER_ZEROED = "thick_eager_zeroed"
    THICK_LAZY_ZEROED = "thick_lazy_zeroed"


@enum.unique
class Transport(enum.Enum):
    """Virtual disk controller a volume is attached to."""
    LSILOGIC = "lsilogic"
    PVSCSI = "pvscsi"


# Unit 7 of a SCSI bus is taken by the controller itself.
RESERVED_SLOT = 7


def _provision_mode(value):
    if not value:
        return ProvisionMode.THIN
    try:
        return ProvisionMode(value)
    except ValueError:
        raise ConfigurationError("Unknown provisioning mode %r" % value)


class Volume(object):
    """A planned piece of a disk on one datastore. Immutable."""

    __slots__ = ("_kind", "_vm_id", "_mode", "_fullpath", "_size",
                 "_datastore_name", "_transport", "_slot")

    def __init__(self, kind, vm_id, mode, fullpath, size, datastore_name,
                 transport, slot):
        self._kind = kind
        self._vm_id = vm_id
        self._mode = mode
        self._fullpath = fullpath
        self._size = size
        self._datastore_name = datastore_name
        self._transport = transport
        self._slot = slot

    kind = property(lambda self: self._kind)
    vm_id = property(lambda self: self._vm_id)
    mode = property(lambda self: self._mode)
    fullpath = property(lambda self: self._fullpath)
    size = property(lambda self: self._size)
    datastore_name = property(lambda self: self._datastore_name)
    transport = property(lambda self: self._transport)
    slot = property(lambda self: self._slot)

    def _key(self):
        return (self._kind, self._vm_id, self._mode, self._fullpath,
                self._size, self._datastore_name, self._transport,
                self._slot)

    def __eq__(self, other):
        if isinstance(other, Volume):
            return self._key() == other._key()
        return NotImplemented

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self._key())

    def to_dict(self):
        return {
            "kind": self._kind.value,
            "vm_id": self._vm_id,
            "mode": self._mode.value,
            "fullpath": self._fullpath,
            "size": self._size,
            "datastore_name": self._datastore_name,
            "transport": self._transport.value,
            "slot": self._slot,
        }

    def __repr__(self):
        return "Volume(path=%s, size=%s, transport=%s, slot=%s)" % (
            self._fullpath, self._size, self._transport.value, self._slot)


class DiskRequest(object):
    """What a VM needs for one kind of disk, plus the volumes placed for it.
    """

    def __init__(self, kind, size=0, shared=False, mode=ProvisionMode.THIN,
                 affinity=True, bisect=False):
        """
        :type kind: DiskKind
        :param size: total size requested
        :param shared: place on shared datastores instead of local ones
        :type mode: ProvisionMode
        :param affinity: fill as few datastores as possible; data disks
                         without affinity are striped across datastores
        :param bisect: split the disk into two halves on two datastores
        """
        if size is None:
            size = 0
        if size < 0:
            raise ConfigurationError("Negative %s disk size %s" %
                                     (kind.value, size))
        self.kind = kind
        self.size = size
        self.shared = bool(shared)
        self.mode = mode
        self.affinity = bool(affinity)
        self.bisect = bool(bisect)
        self.volumes = {}

    @property
    def transport(self):
        if self.kind is DiskKind.DATA and not self.affinity:
            return Transport.PVSCSI
        return Transport.LSILOGIC

    @property
    def placed_size(self):
        return sum(v.size for v in self.volumes.values())

    def add_volume(self, volume):
        self.volumes[volume.fullpath] = volume

    def copy(self):
        disk = DiskRequest(self.kind, self.size, self.shared, self.mode,
                           self.affinity, self.bisect)
        # volumes are immutable, a new mapping is enough
        disk.volumes = dict(self.volumes)
        return disk

    def __repr__(self):
        return "DiskRequest(kind=%s, size=%s, shared=%s, volumes=%s)" % (
            self.kind.value, self.size, self.shared, len(self.volumes))


class VMRequest(object):
    """Virtual machine placement request."""

    def __init__(self, name, vm_id=None, req_mem=0, datastore_pattern=None,
                 system_disks=None, swap_disks=None, data_disks=None):
        if not name:
            raise ConfigurationError("VM request without a name")
        self.id = vm_id
        self.name = name
        self.req_mem = req_mem or 0
        self.datastore_pattern = datastore_pattern
        self.system_disks = system_disks or DiskRequest(DiskKind.SYSTEM)
        self.swap_disks = swap_disks or DiskRequest(DiskKind.SWAP)
        self.data_disks = data_disks or DiskRequest(DiskKind.DATA,
                                                    affinity=False)
        self.host_name = None
        self.slots = {}

    @staticmethod
    def from_dict(options):
        """Build a request from caller parameters.

        Swap follows the system disk placement (local or shared); the data
        disk is striped unless data_affinity is set.
        """
        options = dict(options)
        system_shared = options.get("system_shared", False)
        system_disks = DiskRequest(
            DiskKind.SYSTEM,
            size=options.get("system_size", 0),
            shared=system_shared,
            mode=_provision_mode(options.get("system_mode")))
        swap_disks = DiskRequest(
            DiskKind.SWAP,
            size=options.get("swap_size", 0),
            shared=system_shared,
            mode=_provision_mode(options.get("swap_mode")))
        data_disks = DiskRequest(
            DiskKind.DATA,
            size=options.get("data_size", 0),
            shared=options.get("data_shared", False),
            mode=_provision_mode(options.get("data_mode")),
            affinity=options.get("data_affinity", False),
            bisect=options.get("data_bisect", False))
        return VMRequest(options.get("name"),
                         vm_id=options.get("id"),
                         req_mem=options.get("req_mem", 0),
                         datastore_pattern=options.get("datastore_pattern"),
                         system_disks=system_disks,
                         swap_disks=swap_disks,
                         data_disks=data_disks)

    def disks(self):
        return [self.system_disks, self.swap_disks, self.data_disks]

    def disk(self, kind):
        if kind is DiskKind.SYSTEM:
            return self.system_disks
        elif kind is DiskKind.SWAP:
            return self.swap_disks
        elif kind is DiskKind.DATA:
            return self.data_disks
        raise ValueError("Unknown disk kind %s" % kind)

    def volumes(self):
        for disk in self.disks():
            for volume in disk.volumes.values():
                yield volume

    def next_slot(self, transport):
        """Allocate the next controller slot on a transport."""
        slot = self.slots.get(transport, 0)
        if slot == RESERVED_SLOT:
            slot += 1
        self.slots[transport] = slot + 1
        return slot

    def volume_add(self, kind, datastore, size):
        """Resolve a new volume of this VM on a datastore.

        :type kind: DiskKind
        :type datastore: StoragePool
        :rtype: Volume
        """
        disk = self.disk(kind)
        transport = disk.transport
        slot = self.next_slot(transport)
        volume = Volume(kind, self.id, disk.mode,
                        volume_path(datastore.name, self.name, kind.value,
                                    slot),
                        size, datastore.name, transport, slot)
        disk.add_volume(volume)
        return volume

    def volume_charge(self, volume):
        """Space a volume takes on its datastore.

        The VM's memory is swapped next to its system disk, so the system
        volume carries the memory reservation.
        """
        if volume.kind is DiskKind.SYSTEM:
            return volume.size + self.req_mem
        return volume.size

    def shared_size(self):
        return sum(d.size for d in self.disks() if d.shared)

    def local_size(self):
        return sum(d.size for d in self.disks() if not d.shared)

    def copy(self):
        vm = VMRequest(self.name, self.id, self.req_mem,
                       self.datastore_pattern,
                       self.system_disks.copy(),
                       self.swap_disks.copy(),
                       self.data_disks.copy())
        vm.host_name = self.host_name
        vm.slots = dict(self.slots)
        return vm

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "host_name": self.host_name,
            "req_mem": self.req_mem,
            "volumes": [v.to_dict() for v in self.volumes()],
        }

    def __repr__(self):
        return "VMRequest(name=%s, host=%s)" % (self.name, self.host_name)
