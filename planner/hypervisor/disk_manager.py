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
import logging

from planner.common.log import log_duration_with
from planner.exceptions import ConfigurationError
from planner.exceptions import ProvisioningError

SUCCESS = "success"
ERROR = "error"


class ProvisionResult(object):

    def __init__(self, state, message=None):
        self.state = state
        self.message = message

    @property
    def success(self):
        return self.state == SUCCESS

    def __eq__(self, other):
        return isinstance(other, ProvisionResult) and \
            (self.state, self.message) == (other.state, other.message)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        return "ProvisionResult(state=%s, message=%s)" % (self.state,
                                                          self.message)


class VolumeProvisioner(metaclass=abc.ABCMeta):
    """Creates and destroys virtual disk files on the datastores."""

    @abc.abstractmethod
    def create_volume(self, volume):
        """Create the virtual disk backing a planned volume.

        :type volume: Volume
        :return: {"state": "success"|"error", "message": str}
        """
        pass

    @abc.abstractmethod
    def destroy_volume(self, volume):
        """Destroy the virtual disk backing a volume.

        :type volume: Volume
        :return: {"state": "success"|"error", "message": str}
        """
        pass


class VolumeManager(object):
    """Turns the volumes of a placed VM into virtual disks."""

    def __init__(self, provisioner):
        self._logger = logging.getLogger(__name__)
        self._provisioner = provisioner

    @log_duration_with(log_level="debug")
    def create_volumes(self, vm):
        """Create swap volumes, then data volumes in reverse planned order.

        On the first failure every volume created by this call is destroyed
        again, last created first.

        :type vm: VMRequest
        :rtype: ProvisionResult
        """
        self._check_vm(vm)
        volumes = list(vm.swap_disks.volumes.values()) + \
            list(reversed(list(vm.data_disks.volumes.values())))

        created = []
        for volume in volumes:
            if volume.size == 0:
                continue
            try:
                self._call("create", self._provisioner.create_volume,
                           volume)
            except ProvisioningError as e:
                self._logger.warning("Failed to create volumes of %s: %s" %
                                     (vm.name, e))
                self._compensate(created)
                return ProvisionResult(ERROR, str(e))
            created.append(volume)

        return ProvisionResult(SUCCESS)

    @log_duration_with(log_level="debug")
    def delete_volumes(self, vm):
        """Destroy swap then data volumes, stopping at the first failure.

        :type vm: VMRequest
        :rtype: ProvisionResult
        """
        self._check_vm(vm)
        volumes = list(vm.swap_disks.volumes.values()) + \
            list(vm.data_disks.volumes.values())

        for volume in volumes:
            if volume.size == 0:
                continue
            try:
                self._call("destroy", self._provisioner.destroy_volume,
                           volume)
            except ProvisioningError as e:
                self._logger.warning("Failed to delete volumes of %s: %s" %
                                     (vm.name, e))
                return ProvisionResult(ERROR, str(e))

        return ProvisionResult(SUCCESS)

    def _check_vm(self, vm):
        if vm.id is None:
            raise ConfigurationError("VM %s has no id" % vm.name)

    def _call(self, action, func, volume):
        """Call the provisioner, turning error states and exceptions into
        ProvisioningError.
        """
        try:
            result = func(volume)
        except ProvisioningError:
            raise
        except Exception as e:
            raise ProvisioningError(volume.fullpath, str(e))

        state = result.get("state") if result else None
        if state != SUCCESS:
            message = result.get("message") if result else None
            raise ProvisioningError(volume.fullpath,
                                    message or "state %s" % state)
        self._logger.debug("%s %s" % (action, volume.fullpath))

    def _compensate(self, created):
        for volume in reversed(created):
            try:
                self._call("destroy", self._provisioner.destroy_volume,
                           volume)
            except ProvisioningError as e:
                self._logger.error("Failed to destroy %s while rolling back: "
                                   "%s" % (volume.fullpath, e))
