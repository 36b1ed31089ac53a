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

"""datastore-planner: place a batch of VMs on an inventory snapshot."""

import logging
import sys

import yaml

from planner.common.log import setup_logging
from planner.exceptions import ConfigurationError
from planner.hypervisor.inventory import YamlInventorySource
from planner.hypervisor.resources import VMRequest
from planner.planner_config import InvalidConfig
from planner.planner_config import PlannerConfig
from planner.session import PlacementSession

EXIT_OK = 0
EXIT_NO_HOST = 1
EXIT_CONFIG_ERROR = 2

logger = logging.getLogger(__name__)


def load_requests(path):
    """Read VM requests from a yaml list, or a dict holding it under "vms".
    """
    with open(path, "r") as f:
        content = yaml.safe_load(f)

    if isinstance(content, dict):
        content = content.get("vms")
    if not isinstance(content, list):
        raise ConfigurationError("Requests %s have no VM list" % path)
    return [VMRequest.from_dict(options) for options in content]


def _setup_logging(config):
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    setup_logging(log_level=log_level,
                  logging_file=config.logging_file,
                  logging_file_size=config.logging_file_size,
                  logging_file_backup_count=config.logging_file_backup_count,
                  console=config.console_log,
                  syslog=not config.no_syslog)


def run(config, out=None):
    out = out or sys.stdout
    try:
        session = PlacementSession(YamlInventorySource(config.inventory),
                                   buffer_size=config.buffer_size,
                                   clusters=config.clusters)
        vms = load_requests(config.requests)
        hosts = config.hosts or sorted(session.hosts)
        feasible = session.feasible_hosts(
            vms, hosts,
            share_pattern=config.share_datastore_pattern,
            local_pattern=config.local_datastore_pattern)
        plans = session.plan(vms, feasible)
    except (ConfigurationError, EnvironmentError, yaml.YAMLError) as e:
        logger.error("Cannot plan: %s" % e)
        sys.stderr.write("error: %s\n" % e)
        return EXIT_CONFIG_ERROR

    output = {
        "feasible_hosts": feasible,
        "plans": dict((host, [vm.to_dict() for vm in placed])
                      for host, placed in plans.items()),
    }

    if not plans:
        out.write(yaml.safe_dump(output, default_flow_style=False))
        return EXIT_NO_HOST

    if config.commit:
        host = next(iter(plans))
        consumed = session.commission(plans[host])
        output["committed"] = {"host": host, "consumed": consumed}

    out.write(yaml.safe_dump(output, default_flow_style=False))
    return EXIT_OK


def main(args=None):
    try:
        config = PlannerConfig(args)
    except InvalidConfig as e:
        sys.stderr.write("error: %s\n" % e)
        return EXIT_CONFIG_ERROR

    _setup_logging(config)
    logger.info("Startup config: %s" % config.options)
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
