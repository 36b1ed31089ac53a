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

"""Fake volume provisioning kept in memory."""

import logging

from planner.hypervisor.disk_manager import ERROR
from planner.hypervisor.disk_manager import SUCCESS
from planner.hypervisor.disk_manager import VolumeProvisioner


class FakeVolumeProvisioner(VolumeProvisioner):
    """Keeps created volumes in a dict keyed by full path.

    Attributes:
        capacity_map: datastore name to capacity, unlimited when missing
        fail_paths: full paths whose create or destroy calls fail
    """

    def __init__(self, capacity_map=None):
        self._logger = logging.getLogger(__name__)
        self.capacity_map = capacity_map or {}
        self.volumes = {}
        self.fail_paths = set()
        self.calls = []

    def create_volume(self, volume):
        self.calls.append(("create", volume.fullpath))
        if volume.fullpath in self.fail_paths:
            return self._error("injected failure")
        if volume.fullpath in self.volumes:
            self._logger.warning("volume %s already exists" % volume.fullpath)
            return self._error("EEXISTS")
        if self.used_storage(volume.datastore_name) + volume.size > \
                self._datastore_capacity(volume.datastore_name):
            return self._error("datastore %s out of space" %
                               volume.datastore_name)

        self.volumes[volume.fullpath] = volume
        return {"state": SUCCESS, "message": None}

    def destroy_volume(self, volume):
        self.calls.append(("destroy", volume.fullpath))
        if volume.fullpath in self.fail_paths:
            return self._error("injected failure")
        if volume.fullpath not in self.volumes:
            self._logger.warning("volume %s doesn't exist" % volume.fullpath)
            return self._error("ENOENT")

        del self.volumes[volume.fullpath]
        return {"state": SUCCESS, "message": None}

    def used_storage(self, datastore):
        return sum(v.size for v in self.volumes.values()
                   if v.datastore_name == datastore)

    def _datastore_capacity(self, datastore):
        return self.capacity_map.get(datastore, float("inf"))

    def _error(self, message):
        return {"state": ERROR, "message": message}
