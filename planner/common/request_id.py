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

import threading
import uuid
from contextlib import contextmanager

_request_id_store = threading.local()


def current_request_id():
    """Innermost request id of the calling thread, or None."""
    if hasattr(_request_id_store, "value") and \
            len(_request_id_store.value) > 0:
        return _request_id_store.value[-1]
    return None


@contextmanager
def request_context(request_id=None):
    """Tag every log record emitted inside the block with a request id.

    Contexts nest; the innermost id wins.
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    if not hasattr(_request_id_store, "value"):
        _request_id_store.value = []
    _request_id_store.value.append(request_id)
    try:
        yield request_id
    finally:
        _request_id_store.value.pop()


class RequestIdFilter(object):
    """Request id context log filter."""

    def filter(self, record):
        request_id = current_request_id()
        if request_id:
            record.request_id = " [Request:%s]" % request_id
        else:
            record.request_id = ""
        return True
