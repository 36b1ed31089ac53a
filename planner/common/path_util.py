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
import re

VMDK_EXT = "vmdk"

_DATASTORE_PATH_RE = re.compile(r"^\[(?P<datastore>[^\]]*)\]\s*(?P<path>.*)$")


class DatastorePathException(Exception):
    pass


def vmdk_add_suffix(name):
    return "%s.%s" % (name, VMDK_EXT)


def datastore_path(datastore, path):
    return "[%s] %s" % (datastore, path)


def volume_path(datastore, vm_name, kind, slot):
    """Full datastore path of a planned volume.

    e.g. volume_path("ds1", "web-0", "data", 3) -> "[ds1] web-0/data3.vmdk"
    """
    return datastore_path(datastore,
                          "%s/%s" % (vm_name, vmdk_add_suffix(
                              "%s%d" % (kind, slot))))


def split_datastore_path(path):
    """Split "[datastore] relative/path" into its two components.

    :raise DatastorePathException: path is not bracketed
    """
    match = _DATASTORE_PATH_RE.match(path or "")
    if not match:
        raise DatastorePathException("Invalid datastore path %r" % path)
    return match.group("datastore"), match.group("path")


def datastore_name_from_path(path):
    return split_datastore_path(path)[0]
