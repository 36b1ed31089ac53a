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

import json
import logging
import os
from optparse import OptionParser

from planner.placement.placement_manager import DEFAULT_BUFFER_SIZE


class InvalidConfig(Exception):
    """ Exception thrown when a planner config is not valid """
    pass


class PlannerConfig(object):
    """
    Class encapsulating the planner configuration options.

    Options can be set in two ways in increasing order of precedence:
        a - Through the config.json file under the config path
        b - Through the command line
    """

    DEFAULT_CONFIG_PATH = "/etc/opt/datastore-planner"
    DEFAULT_CONFIG_FILE = "config.json"
    DEFAULT_LOG_FILE_SIZE = 10 * 1024 * 1024
    DEFAULT_LOG_FILE_BACKUP_COUNT = 10

    LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]

    INVENTORY = "inventory"
    REQUESTS = "requests"
    CLUSTERS = "clusters"
    HOSTS = "hosts"
    BUFFER_SIZE = "buffer_size"
    SHARE_DATASTORE_PATTERN = "share_datastore_pattern"
    LOCAL_DATASTORE_PATTERN = "local_datastore_pattern"

    LIST_OPTIONS = [CLUSTERS, HOSTS]

    def __init__(self, args=None):
        self._logger = logging.getLogger(__name__)
        self._parse_options(args)
        self._load_config()
        self._validate()

    @property
    def options(self):
        return self._options

    @property
    def inventory(self):
        return getattr(self._options, self.INVENTORY)

    @property
    def requests(self):
        return getattr(self._options, self.REQUESTS)

    @property
    def clusters(self):
        return getattr(self._options, self.CLUSTERS)

    @property
    def hosts(self):
        return getattr(self._options, self.HOSTS)

    @property
    def buffer_size(self):
        return getattr(self._options, self.BUFFER_SIZE)

    @property
    def share_datastore_pattern(self):
        return getattr(self._options, self.SHARE_DATASTORE_PATTERN)

    @property
    def local_datastore_pattern(self):
        return getattr(self._options, self.LOCAL_DATASTORE_PATTERN)

    @property
    def commit(self):
        return self._options.commit

    @property
    def log_level(self):
        return self._options.log_level

    @property
    def logging_file(self):
        return self._options.logging_file

    @property
    def logging_file_size(self):
        return self._options.logging_file_size

    @property
    def logging_file_backup_count(self):
        return self._options.logging_file_backup_count

    @property
    def console_log(self):
        return self._options.console_log

    @property
    def no_syslog(self):
        return self._options.no_syslog

    def _parse_options(self, args=None):
        """
        Set of command line options
        """
        parser = OptionParser(prog="datastore-planner")
        parser.add_option("--config-path", dest="config_path", type="string",
                          default=self.DEFAULT_CONFIG_PATH)
        parser.add_option("--inventory", dest=self.INVENTORY, type="string",
                          default=None,
                          help="YAML inventory snapshot of the clusters.")
        parser.add_option("--requests", dest=self.REQUESTS, type="string",
                          default=None,
                          help="YAML list of VM requests to place.")
        parser.add_option("--clusters", dest=self.CLUSTERS, type="string",
                          default=None,
                          help="Comma separated list of cluster names")
        parser.add_option("--hosts", dest=self.HOSTS, type="string",
                          default=None,
                          help="Comma separated list of candidate hosts, "
                               "all inventory hosts when unset")
        parser.add_option("--buffer-size", dest=self.BUFFER_SIZE, type="int",
                          default=DEFAULT_BUFFER_SIZE,
                          help="Space left free on every datastore.")
        parser.add_option("--share-datastore-pattern",
                          dest=self.SHARE_DATASTORE_PATTERN, type="string",
                          default=None,
                          help="Wildcard shared datastores must match")
        parser.add_option("--local-datastore-pattern",
                          dest=self.LOCAL_DATASTORE_PATTERN, type="string",
                          default=None,
                          help="Wildcard local datastores must match")
        parser.add_option("--commit", dest="commit", action="store_true",
                          default=False,
                          help="Commission the first feasible plan.")
        parser.add_option("--logging-level", dest="log_level", type="string",
                          default="info",
                          help="The string log level to log at.")
        parser.add_option("--logging-file", dest="logging_file", type="string",
                          default=None,
                          help="Path to the planner log file.")
        parser.add_option("--logging-file-size", dest="logging_file_size",
                          type="int", default=self.DEFAULT_LOG_FILE_SIZE,
                          help="Max log file size in bytes.")
        parser.add_option("--logging-file-backup-count",
                          dest="logging_file_backup_count", type="int",
                          default=self.DEFAULT_LOG_FILE_BACKUP_COUNT,
                          help="Number of rotated log files to keep.")
        parser.add_option("--no-syslog", dest="no_syslog",
                          action="store_true",
                          default=False, help="Disable syslog forwarding.")
        parser.add_option("--console-log", dest="console_log",
                          action="store_true",
                          default=False, help="Show the logs in the console.")
        self._default_options = parser.defaults

        self._options, _ = parser.parse_args(args=args)
        self._sanitize_config()

    def _sanitize_config(self):
        """
        Turn comma separated list options into lists.
        """
        for key in self.LIST_OPTIONS:
            setattr(self._options, key,
                    self._parse_list(getattr(self._options, key)))

    def _parse_list(self, string_option):
        try:
            return [option.strip() for option in string_option.split(",")]
        except AttributeError:
            # Already a list, or unset
            pass
        return string_option

    def _read_json_file(self, filename):
        """
        Read a json file given the filename under the config path
        """
        json_file = os.path.join(self._options.config_path, filename)
        if os.path.exists(json_file):
            with open(json_file) as fh:
                try:
                    return json.load(fh)
                except ValueError as e:
                    raise InvalidConfig("Malformed %s: %s" % (json_file, e))
        return {}

    def _is_unset(self, key):
        """
        Check if an option is still at its default value.
        """
        if not hasattr(self._options, key):
            return False
        if key in self._default_options:
            if self._default_options[key] == getattr(self._options, key):
                return True
        if not getattr(self._options, key):
            return True
        return False

    def _load_config(self):
        """
        Load configuration from the json config file. Command line values
        take precedence.
        """
        data = self._read_json_file(self.DEFAULT_CONFIG_FILE)
        for key in data:
            if not hasattr(self._options, key):
                raise InvalidConfig("Unknown option %s in %s" %
                                    (key, self.DEFAULT_CONFIG_FILE))
            if self._is_unset(key):
                setattr(self._options, key, data[key])

        self._sanitize_config()

    def _validate(self):
        if not self.inventory:
            raise InvalidConfig("No inventory snapshot given")
        if not self.requests:
            raise InvalidConfig("No VM requests given")
        if not isinstance(self.buffer_size, int) or self.buffer_size < 0:
            raise InvalidConfig("Buffer size must be a non negative integer, "
                                "got %r" % self.buffer_size)
        if self.log_level.lower() not in self.LOG_LEVELS:
            raise InvalidConfig("Unknown logging level %s" % self.log_level)
