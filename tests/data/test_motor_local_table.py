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
"""Tests for MotorLocalTable and LocalDocumentRepository against mongomock."""

from dataclasses import dataclass

import pytest

from anyrepo.core.config import Config
from anyrepo.data.document.mongodb import LocalDocumentRepository, MotorLocalTable
from anyrepo.data.ports.outbound import LocalTablePort, RepositoryPort
from anyrepo.data.query_filter import FilterOperator, QueryFilter
from anyrepo.kernel.exceptions import ConfigurationException, DuplicateKeyException

mongomock_motor = pytest.importorskip("mongomock_motor")


@dataclass
class Note:
    id: int = 0
    title: str = ""
    done: bool = False


@pytest.fixture
async def table():
    table = MotorLocalTable(mongomock_motor.AsyncMongoMockClient()["testdb"])
    await table.open({"notes": "id"})
    return table


@pytest.fixture
def repo(table):
    return LocalDocumentRepository(Note, table, store_name="notes")


class TestMotorLocalTable:
    def test_conforms_to_port(self, table):
        assert isinstance(table, LocalTablePort)

    async def test_from_config_selects_database(self):
        config = Config({"anyrepo": {"data": {"document": {"database": "offline"}}}})
        table = MotorLocalTable.from_config(config)
        assert table._db.name == "offline"

    async def test_unset_keys_are_assigned_in_sequence(self, table):
        assert await table.add_record("notes", {"id": 0, "title": "a"}) == 1
        assert await table.add_record("notes", {"id": None, "title": "b"}) == 2

    async def test_explicit_key_advances_counter(self, table):
        await table.add_record("notes", {"id": 7, "title": "seven"})
        assert await table.add_record("notes", {"id": 0, "title": "next"}) == 8

    async def test_duplicate_key_raises(self, table):
        await table.add_record("notes", {"id": 3, "title": "x"})
        with pytest.raises(DuplicateKeyException):
            await table.add_record("notes", {"id": 3, "title": "y"})

    async def test_to_array_is_key_ordered_and_restores_key_field(self, table):
        await table.bulk_add("notes", [{"id": 5, "title": "e"}, {"id": 2, "title": "b"}])
        assert await table.to_array("notes") == [{"title": "b", "id": 2}, {"title": "e", "id": 5}]

    async def test_update_and_delete_report_matches(self, table):
        await table.add_record("notes", {"id": 1, "title": "a"})
        assert await table.update_record("notes", {"id": 1, "title": "A"}) is True
        assert await table.update_record("notes", {"id": 9, "title": "Z"}) is False
        assert (await table.get("notes", 1))["title"] == "A"
        assert await table.delete_record("notes", 1) is True
        assert await table.delete_record("notes", 1) is False
        assert await table.get("notes", 1) is None

    async def test_where_matches_key_and_plain_fields(self, table):
        await table.bulk_add("notes", [{"id": 1, "title": "a"}, {"id": 2, "title": "a"}, {"id": 3, "title": "b"}])
        assert [r["id"] for r in await table.where("notes", "title", "a")] == [1, 2]
        assert [r["title"] for r in await table.where("notes", "id", 3)] == ["b"]

    async def test_clear_table(self, table):
        await table.add_record("notes", {"id": 1})
        await table.clear_table("notes")
        assert await table.to_array("notes") == []


class TestLocalDocumentRepository:
    def test_conforms_to_port(self, repo):
        assert isinstance(repo, RepositoryPort)

    async def test_insert_returns_copy_with_assigned_key(self, repo):
        note = Note(title="buy milk")
        saved = await repo.insert(note)
        assert saved.id == 1
        assert note.id == 0

    async def test_fetch_filtered_in_memory(self, repo):
        for title, done in (("Write report", False), ("wash car", True), ("Walk dog", False)):
            await repo.insert(Note(title=title, done=done))
        query = (
            QueryFilter(order_by="title")
            .where("title", FilterOperator.STARTS_WITH, "w")
            .where("done", FilterOperator.EQUALS, "false")
        )
        assert [n.title for n in await repo.fetch_filtered(query)] == ["Walk dog", "Write report"]

    async def test_fetch_by_id_and_absent(self, repo):
        await repo.insert(Note(id=4, title="four"))
        assert await repo.fetch_by_id(4) == Note(id=4, title="four")
        assert await repo.fetch_by_id(5) is None

    async def test_unparseable_id_matches_nothing(self, repo):
        await repo.insert(Note(title="one"))
        assert await repo.fetch_by_id("abc") is None
        assert await repo.delete_by_id("abc") is False

    async def test_fetch_filtered_unknown_include_field(self, repo):
        await repo.insert(Note(title="one"))
        with pytest.raises(ConfigurationException):
            await repo.fetch_filtered(QueryFilter(include_fields=["priority"]))

    async def test_update_missing_returns_none(self, repo):
        assert await repo.update(Note(id=12, title="ghost")) is None

    async def test_delete_and_delete_all(self, repo):
        await repo.insert(Note(title="a"))
        await repo.insert(Note(title="b"))
        assert await repo.delete(Note(id=1)) is True
        assert await repo.delete_by_id(1) is False
        await repo.delete_all()
        await repo.delete_all()
        assert await repo.fetch_all() == []

    async def test_replace_all_keeps_given_identities(self, repo):
        await repo.insert(Note(title="old"))
        await repo.replace_all([Note(id=10, title="x"), Note(id=20, title="y")])
        assert [n.id for n in await repo.fetch_all()] == [10, 20]
        assert (await repo.insert(Note(title="z"))).id == 21
