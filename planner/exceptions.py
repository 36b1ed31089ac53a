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


class PlannerException(Exception):
    pass


class ConfigurationError(PlannerException):
    """Missing identifiers or an inconsistent inventory."""
    pass


class InfeasibilityError(PlannerException):
    """A VM does not fit on a host. Never escapes a planning call."""

    def __init__(self, vm_name, host_name, reason):
        super(InfeasibilityError, self).__init__(reason)
        self.vm_name = vm_name
        self.host_name = host_name
        self.reason = reason

    def __str__(self):
        return "VM %s does not fit on host %s: %s" % \
               (self.vm_name, self.host_name, self.reason)


class ProvisioningError(PlannerException):
    """A volume create or destroy call failed."""

    def __init__(self, path, message):
        super(ProvisioningError, self).__init__(message)
        self.path = path
        self.message = message

    def __str__(self):
        return "Provisioning of %s failed: %s" % (self.path, self.message)
