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

import os
import shutil
import tempfile
import unittest

import yaml
from hamcrest import *  # noqa
from parameterized import parameterized

from planner.exceptions import ConfigurationError
from planner.hypervisor.fake.inventory import FakeInventorySource
from planner.hypervisor.inventory import YamlInventorySource
from planner.hypervisor.inventory import load_hosts

SNAPSHOT = [
    {"name": "c1",
     "hosts": [
         {"name": "esx-1",
          "connection_state": "connected",
          "datastores": [
              {"name": "local-1", "shared": False,
               "total_space": 2000, "free_space": 1500},
              {"name": "san-1", "shared": True,
               "total_space": 8000, "free_space": 6000},
              {"name": "nfs-1", "shared": True,
               "total_space": 4000, "free_space": 1000}]},
         {"name": "esx-2",
          "connection_state": "disconnected",
          "datastores": [
              {"name": "local-2", "shared": False,
               "total_space": 2000, "free_space": 500},
              {"name": "san-1", "shared": True,
               "total_space": 8000, "free_space": 6000}]}]},
    {"name": "c2",
     "hosts": [
         {"name": "esx-3",
          "datastores": [
              {"name": "local-1", "free_space": 700}]}]},
]


class TestLoadHosts(unittest.TestCase):

    def test_load_hosts(self):
        hosts = load_hosts(SNAPSHOT)

        assert_that(sorted(hosts), is_(["esx-1", "esx-2", "esx-3"]))
        esx_1 = hosts["esx-1"]
        assert_that(esx_1.cluster, is_("c1"))
        assert_that(esx_1.local_capacity, is_(1500))
        assert_that(esx_1.shared_capacity, is_(7000))
        assert_that(hosts["esx-2"].connected, is_(False))
        assert_that(hosts["esx-3"].connected, is_(True))

    def test_shared_datastore_is_one_pool(self):
        hosts = load_hosts(SNAPSHOT)

        san_1 = hosts["esx-1"].shared["san-1"]
        assert_that(hosts["esx-2"].shared["san-1"], same_instance(san_1))

        san_1.reserve(1000)
        assert_that(hosts["esx-2"].shared_capacity, is_(5000))

    def test_local_datastores_are_private(self):
        hosts = load_hosts(SNAPSHOT)

        assert_that(hosts["esx-3"].local["local-1"],
                    is_not(same_instance(hosts["esx-1"].local["local-1"])))
        assert_that(hosts["esx-3"].local_capacity, is_(700))

    @parameterized.expand([
        ("san-*", None, ["san-1"], ["local-1"]),
        ("nfs*", "none", ["nfs-1"], []),
        (None, "local-?", ["nfs-1", "san-1"], ["local-1"]),
        ("SAN-*", None, [], ["local-1"]),
    ])
    def test_patterns(self, share_pattern, local_pattern, shared, local):
        hosts = load_hosts(SNAPSHOT, share_pattern=share_pattern,
                           local_pattern=local_pattern)

        assert_that(sorted(hosts["esx-1"].shared), is_(shared))
        assert_that(sorted(hosts["esx-1"].local), is_(local))

    def test_host_filter(self):
        hosts = load_hosts(SNAPSHOT, hosts=["esx-3"])
        assert_that(list(hosts), is_(["esx-3"]))

    @parameterized.expand([
        ([{"name": "c", "hosts": [
            {"name": "a", "datastores": [{"name": "ds", "shared": True}]},
            {"name": "b",
             "datastores": [{"name": "ds", "shared": False}]}]}],),
        ([{"name": "c", "hosts": [
            {"name": "a", "datastores": [{"name": "ds", "shared": False}]},
            {"name": "b", "datastores": [{"name": "ds", "shared": True}]}]}],),
        ([{"name": "c", "hosts": [{"datastores": []}]}],),
        ([{"name": "c", "hosts": [{"name": "a", "datastores": [{}]}]}],),
    ])
    def test_invalid_snapshot(self, snapshot):
        self.assertRaises(ConfigurationError, load_hosts, snapshot)

    @parameterized.expand([
        ("other*", None),
        (None, "other*"),
    ])
    def test_partition_checked_for_filtered_datastores(self, share_pattern,
                                                       local_pattern):
        snapshot = [{"name": "c", "hosts": [
            {"name": "a", "datastores": [{"name": "ds", "shared": True}]},
            {"name": "b", "datastores": [{"name": "ds", "shared": False}]}]}]

        self.assertRaises(ConfigurationError, load_hosts, snapshot,
                          share_pattern=share_pattern,
                          local_pattern=local_pattern)


class TestYamlInventorySource(unittest.TestCase):

    def setUp(self):
        self.dir = tempfile.mkdtemp()
        self.path = os.path.join(self.dir, "inventory.yml")

    def tearDown(self):
        shutil.rmtree(self.dir, ignore_errors=True)

    def _write(self, content):
        with open(self.path, "w") as f:
            yaml.safe_dump(content, f)

    def test_fetch_list(self):
        self._write(SNAPSHOT)
        source = YamlInventorySource(self.path)

        assert_that(source.fetch(), has_length(2))
        assert_that([c["name"] for c in source.fetch(["c2"])], is_(["c2"]))

    def test_fetch_clusters_key(self):
        self._write({"clusters": SNAPSHOT})
        source = YamlInventorySource(self.path)

        hosts = load_hosts(source.fetch())
        assert_that(hosts, has_key("esx-2"))

    def test_fetch_invalid(self):
        self._write({"hosts": []})
        source = YamlInventorySource(self.path)

        self.assertRaises(ConfigurationError, source.fetch)


class TestFakeInventorySource(unittest.TestCase):

    def test_fetch(self):
        source = FakeInventorySource()
        source.add_host("c1", "h1", [("l1", False, 1000), ("s1", True, 500)])
        source.add_host("c1", "h2", [("s1", True, 500)])
        source.add_host("c2", "h3")

        snapshot = source.fetch(["c1"])
        assert_that(snapshot, has_length(1))
        assert_that(snapshot[0]["hosts"], has_length(2))
        assert_that(source.fetch_count, is_(1))

        source.set_free_space("s1", 100)
        hosts = load_hosts(source.fetch())
        assert_that(hosts["h2"].shared_capacity, is_(100))
        assert_that(hosts["h3"].capacity, is_(0))
        # earlier snapshots are copies
        assert_that(snapshot[0]["hosts"][0]["datastores"][1]["free_space"],
                    is_(500))
