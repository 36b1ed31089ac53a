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

import gzip
import logging
import os
import shutil
import sys
import time
from functools import wraps
from logging.handlers import RotatingFileHandler
from logging.handlers import SysLogHandler

from planner.common.request_id import RequestIdFilter

SYSLOG_FORMAT = (
    "datastore-planner: %(levelname)s "
    "[%(process)d:%(threadName)s] "
    "[%(filename)s:%(funcName)s:%(lineno)d]%(request_id)s %(name)s: "
    "%(message)s")
FILE_LOG_FORMAT = (
    "%(levelname)-8s [%(asctime)s] "
    "[%(process)d:%(threadName)s] "
    "[%(filename)s:%(funcName)s:%(lineno)d]%(request_id)s %(name)s: "
    "%(message)s")
PLAIN_LOG_FORMAT = (
    "%(levelname)s: %(message)s"
)


class GzipRotatingFileHandler(RotatingFileHandler):
    """A rotating file handler that gzips rotated files."""

    def doRollover(self):
        if self.stream:
            self.stream.close()
            self.stream = None

        if self.backupCount > 0:
            # shift rotated log files.
            for i in range(self.backupCount - 1, 0, -1):
                src = "%s.%d.gz" % (self.baseFilename, i)
                dest = "%s.%d.gz" % (self.baseFilename, i + 1)
                if os.path.exists(src):
                    os.rename(src, dest)

            # compress the current log file.
            dest = self.baseFilename + ".1.gz"
            with open(self.baseFilename, 'rb') as source_file:
                with gzip.open(dest, 'wb') as dest_file:
                    shutil.copyfileobj(source_file, dest_file)
            os.remove(self.baseFilename)

        self.mode = 'w'
        self.stream = self._open()


def setup_logging(log_level=logging.INFO, logging_file=None,
                  logging_file_size=10 * 1000 * 1000,
                  logging_file_backup_count=0, console=False, syslog=True):
    """ Configure the root logger with the planner handlers and make sure
        that the logging format matches ISO8601"""

    if console:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(FILE_LOG_FORMAT)
        _add_handler(handler, formatter, log_level)
        # console log disables file and syslog
        return

    if logging_file:
        handler, formatter = _file_handler(logging_file, logging_file_size,
                                           logging_file_backup_count)
        _add_handler(handler, formatter, log_level)

    if syslog:
        handler, formatter = _syslog_handler(SysLogHandler.LOG_LOCAL0)
        _add_handler(handler, formatter, log_level)


def _add_handler(handler, formatter, log_level, logger=None):
    if logger is None:
        logger = logging.getLogger()
    formatter.converter = time.gmtime
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)
    logger.setLevel(log_level)


def _syslog_address():
    if sys.platform.lower() == "darwin":
        return "/var/run/syslog"
    else:
        return "/dev/log"


def _syslog_handler(facility):
    handler = SysLogHandler(_syslog_address(), facility)
    # The default SysLogHandler appends a zero-terminator which most syslog
    # daemons write verbatim into the log file.
    handler.append_nul = False
    formatter = logging.Formatter(SYSLOG_FORMAT)
    return handler, formatter


def _file_handler(logging_file, size, backup_count):
    handler = GzipRotatingFileHandler(logging_file,
                                      maxBytes=size,
                                      backupCount=backup_count)
    formatter = logging.Formatter(FILE_LOG_FORMAT)
    return handler, formatter


def log_duration(func):
    """Log invocation duration.

    :type func: func
    :rtype: func
    """
    @wraps(func)
    def f(self, *args, **kwargs):
        start = time.time()
        try:
            return func(self, *args, **kwargs)
        finally:
            end = time.time()
            self._logger.info("%s took %fs", func.__name__, end - start)
    return f


def log_duration_with(log_level="info"):
    """Log invocation duration along with the call arguments.

    :type log_level: str
    :rtype: func
    """
    def decorator(func):
        @wraps(func)
        def f(self, *args, **kwargs):
            start = time.time()
            try:
                return func(self, *args, **kwargs)
            finally:
                end = time.time()

                def gen_str():
                    args_str = "".join(str(arg) + " " for arg in args)
                    kwargs_str = "".join(
                        "%s:%s " % (key, kwargs[key]) for key in kwargs)
                    return "{0}: {1}{2}took {3}".format(
                        func.__name__, args_str, kwargs_str, end - start)

                getattr(self._logger, log_level)(gen_str())

        return f
    return decorator
