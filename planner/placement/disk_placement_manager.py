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
import enum
import fnmatch
import logging

from planner.hypervisor.resources import DiskKind


@enum.unique
class PlaceResultCode(enum.Enum):
    OK = 0
    NO_DATASTORES = 1
    NOT_ENOUGH_DATASTORE_CAPACITY = 2


@enum.unique
class BisectKind(enum.Enum):
    NONE = 0
    TRUE = 1
    PSEUDO = 2


class DiskPlaceResult(object):
    """DiskPlaceResult is the result after a disk place engine tries to place
    the data disk of a VM.
    """

    def __init__(self, result, volumes=None, bisect=BisectKind.NONE):
        self.result = result
        self.volumes = volumes or []
        self.bisect = bisect

    @property
    def ok(self):
        return self.result is PlaceResultCode.OK

    def __repr__(self):
        return "DiskPlaceResult(result=%s, volumes=%s, bisect=%s)" % (
            self.result.name, self.volumes, self.bisect.name)


class CandidateSelector(object):
    """CandidateSelector ranks the planning datastores of a host that can
    receive a disk.
    """

    def __init__(self, buffer_size):
        self._logger = logging.getLogger(__name__)
        self.buffer_size = buffer_size

    def candidates(self, disk, host, pattern=None, sticky=None):
        """
        :type disk: DiskRequest
        :type host: Host
        :param pattern: shell wildcard datastore names must match
        :param sticky: name of the datastore to move to the front
        :rtype: list of StoragePool
        """
        shared = disk.shared and len(host.plan_share) > 0
        datastores = host.datastores(shared, planning=True).values()

        candidates = []
        for ds in datastores:
            if pattern and not fnmatch.fnmatchcase(ds.name, pattern):
                continue
            if ds.effective_free < self.buffer_size:
                continue
            candidates.append(ds)

        candidates.sort(key=lambda ds: (-ds.effective_free, ds.name))

        if sticky:
            for index, ds in enumerate(candidates):
                if ds.name == sticky:
                    candidates.insert(0, candidates.pop(index))
                    break

        self._logger.debug("Candidates of %s disk on host %s: %s" %
                           (disk.kind.value, host.name,
                            [ds.name for ds in candidates]))
        return candidates


class DiskPlaceEngine(metaclass=abc.ABCMeta):
    """DiskPlaceEngine is the abstract class for place algorithms of the data
    disk.
    """

    @abc.abstractmethod
    def place(self, vm, candidates, transaction):
        """
        :type vm: VMRequest
        :type candidates: list of StoragePool
        :type transaction: LedgerTransaction
        :rtype: DiskPlaceResult
        """
        pass


class BaseDiskPlacementEngine(DiskPlaceEngine):
    """BaseDiskPlacementEngine provides base methods that are useful for
    place engines.
    """

    def __init__(self, buffer_size):
        self._logger = logging.getLogger(__name__)
        self.buffer_size = buffer_size

    def headroom(self, datastore):
        return datastore.headroom(self.buffer_size)

    def place_volume(self, vm, kind, datastore, size, transaction):
        """Resolve a volume and reserve its charge on the datastore."""
        volume = vm.volume_add(kind, datastore, size)
        transaction.reserve(datastore, vm.volume_charge(volume))
        return volume

    def _no_datastores(self, vm):
        self._logger.info("No datastore left for the data disk of %s" %
                          vm.name)
        return DiskPlaceResult(PlaceResultCode.NO_DATASTORES)

    def _failure(self, vm, candidates):
        self._logger.info("Data disk of %s (%s) does not fit on %s" %
                          (vm.name, vm.data_disks.size,
                           [ds.name for ds in candidates]))
        return DiskPlaceResult(PlaceResultCode.NOT_ENOUGH_DATASTORE_CAPACITY)


class BisectPlaceEngine(BaseDiskPlacementEngine):
    """Split the data disk into two halves on the two most free datastores.

    When a single datastore is left that can hold the whole disk, both halves
    go there and the result is reported as a pseudo bisect.
    """

    def place(self, vm, candidates, transaction):
        if not candidates:
            return self._no_datastores(vm)

        size = vm.data_disks.size
        small = size // 2
        large = size - small

        fits = [ds for ds in candidates if self.headroom(ds) >= large]
        if len(fits) >= 2:
            targets = fits[:2]
            bisect = BisectKind.TRUE
        elif len(fits) == 1 and self.headroom(fits[0]) >= size:
            targets = [fits[0], fits[0]]
            bisect = BisectKind.PSEUDO
        else:
            return self._failure(vm, candidates)

        volumes = []
        for datastore, piece in zip(targets, (large, small)):
            if piece > 0:
                volumes.append(self.place_volume(vm, DiskKind.DATA, datastore,
                                                 piece, transaction))
        return DiskPlaceResult(PlaceResultCode.OK, volumes, bisect)


class AffinityPlaceEngine(BaseDiskPlacementEngine):
    """First fit descending: fill the most free datastore, spill over to the
    next one only when it is full.
    """

    def place(self, vm, candidates, transaction):
        if not candidates:
            return self._no_datastores(vm)

        remaining = vm.data_disks.size
        volumes = []
        for ds in candidates:
            piece = min(remaining, self.headroom(ds))
            if piece <= 0:
                continue
            volumes.append(self.place_volume(vm, DiskKind.DATA, ds, piece,
                                             transaction))
            remaining -= piece
            if remaining == 0:
                return DiskPlaceResult(PlaceResultCode.OK, volumes)
        return self._failure(vm, candidates)


class AntiAffinityPlaceEngine(BaseDiskPlacementEngine):
    """Stripe the data disk evenly over the candidate datastores.

    Datastores are walked from the least to the most free one. A datastore
    that cannot hold an even share of what is left gets all of its headroom;
    the first one that can hold the share ends the walk, the remainder being
    split evenly over it and every datastore after it.
    """

    def place(self, vm, candidates, transaction):
        if not candidates:
            return self._no_datastores(vm)

        datastores = list(reversed(candidates))
        remaining = vm.data_disks.size
        volumes = []

        for index, ds in enumerate(datastores):
            count = len(datastores) - index
            # the first pieces of the split carry the integer remainder
            share = -(-remaining // count)
            if self.headroom(ds) >= share:
                base, extra = divmod(remaining, count)
                for offset, target in enumerate(datastores[index:]):
                    piece = base + 1 if offset < extra else base
                    if piece > 0:
                        volumes.append(self.place_volume(
                            vm, DiskKind.DATA, target, piece, transaction))
                remaining = 0
                break

            piece = self.headroom(ds)
            if piece > 0:
                volumes.append(self.place_volume(vm, DiskKind.DATA, ds, piece,
                                                 transaction))
                remaining -= piece

        if remaining > 0:
            return self._failure(vm, candidates)
        return DiskPlaceResult(PlaceResultCode.OK, volumes)
