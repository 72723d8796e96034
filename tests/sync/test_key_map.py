# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for KeyReconciliationMap."""

import pytest

from anyrepo.data.document.mongodb import MotorLocalTable
from anyrepo.sync import KeyMapping, KeyReconciliationMap

mongomock_motor = pytest.importorskip("mongomock_motor")


@pytest.fixture
async def keys():
    keys = KeyReconciliationMap(MotorLocalTable(mongomock_motor.AsyncMongoMockClient()["keysdb"]), "Customer_Keys")
    await keys.open()
    return keys


class TestKeyReconciliationMap:
    async def test_provisional_then_reconciled(self, keys):
        provisional = await keys.provisional(5)
        assert provisional.provisional
        await keys.record(5, 12)
        assert await keys.all() == [KeyMapping(local_id=5, remote_id=12)]
        assert not (await keys.for_local(5)).provisional

    async def test_lookups_compare_string_forms(self, keys):
        await keys.record(3, 30)
        assert (await keys.for_local("3")).remote_id == 30
        assert (await keys.for_remote("30")).local_id == 3
        assert await keys.for_remote(31) is None

    async def test_unmapped_remote_id_is_its_own_local_id(self, keys):
        await keys.record(1, 9)
        assert await keys.local_id_for(9) == 1
        assert await keys.local_id_for(4) == 4

    async def test_forget(self, keys):
        await keys.record(1, 10)
        await keys.record(2, 20)
        assert await keys.forget_local(1) is True
        assert await keys.forget_remote(20) is True
        assert await keys.forget_remote(20) is False
        assert await keys.all() == []

    async def test_replace_all_and_clear(self, keys):
        await keys.record(1, 1)
        await keys.replace_all([KeyMapping(7, 7), KeyMapping(8, 8)])
        assert [m.local_id for m in await keys.all()] == [7, 8]
        await keys.clear()
        assert await keys.all() == []
