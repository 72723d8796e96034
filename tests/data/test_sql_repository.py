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
"""Tests for SqlRepository (raw SQL text) on SQLite."""

import logging
from dataclasses import dataclass

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from anyrepo.data.query_filter import FilterOperator, QueryFilter
from anyrepo.data.relational.sqlalchemy import SqlRepository
from anyrepo.kernel.exceptions import DuplicateKeyException, ValidationException

pytest.importorskip("aiosqlite")


@dataclass
class Account:
    id: int = 0
    name: str = ""
    balance: int = 0


@dataclass
class Badge:
    code: str = ""
    label: str = ""


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")
    async with engine.begin() as conn:
        await conn.execute(
            text('CREATE TABLE "accounts" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, "name" TEXT, "balance" INTEGER)')
        )
        await conn.execute(text('CREATE TABLE "ledgers" ("id" INTEGER PRIMARY KEY, "name" TEXT, "balance" INTEGER)'))
        await conn.execute(
            text('CREATE TABLE "strict_ledgers" ("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL, "balance" INTEGER)')
        )
        await conn.execute(
            text(
                'CREATE TABLE "strict_accounts" '
                '("id" INTEGER PRIMARY KEY AUTOINCREMENT, "name" TEXT NOT NULL, "balance" INTEGER)'
            )
        )
        await conn.execute(text('CREATE TABLE "badges" ("code" TEXT PRIMARY KEY, "label" TEXT)'))
    yield engine
    await engine.dispose()


@pytest.fixture
async def repo(engine):
    repo = SqlRepository(Account, engine, table_name="accounts", identity_generated=True)
    for name, balance in (("Isadora Jarr", 10), ("Jenny Jones", 250), ("Rocky", 40)):
        await repo.insert(Account(name=name, balance=balance))
    return repo


@pytest.fixture
def ledgers(engine):
    return SqlRepository(Account, engine, table_name="ledgers")


class TestGeneratedKeys:
    async def test_insert_returns_database_key(self, repo):
        saved = await repo.insert(Account(name="New", balance=1))
        assert saved.id == 4
        assert (await repo.fetch_by_id(4)).name == "New"

    async def test_fetch_all(self, repo):
        assert [a.id for a in await repo.fetch_all()] == [1, 2, 3]

    async def test_fetch_by_id_accepts_string_key(self, repo):
        assert (await repo.fetch_by_id("2")).name == "Jenny Jones"

    async def test_fetch_by_id_absent(self, repo):
        assert await repo.fetch_by_id(99) is None

    async def test_unparseable_id_matches_nothing(self, repo):
        assert await repo.fetch_by_id("abc") is None
        assert await repo.delete_by_id("abc") is False

    async def test_insert_with_existing_key_raises(self, repo):
        with pytest.raises(DuplicateKeyException):
            await repo.insert(Account(id=1, name="Clash"))


class TestExplicitKeys:
    async def test_unset_key_becomes_max_plus_one(self, ledgers):
        first = await ledgers.insert(Account(name="a"))
        second = await ledgers.insert(Account(name="b"))
        assert (first.id, second.id) == (1, 2)

    async def test_given_key_is_kept(self, ledgers):
        await ledgers.insert(Account(id=10, name="ten"))
        nxt = await ledgers.insert(Account(name="eleven"))
        assert nxt.id == 11


class TestFiltering:
    async def test_starts_with_is_case_insensitive(self, repo):
        query = QueryFilter().where("Name", FilterOperator.STARTS_WITH, "j")
        assert [a.name for a in await repo.fetch_filtered(query)] == ["Jenny Jones"]

    async def test_numeric_comparison_and_descending_order(self, repo):
        query = QueryFilter(order_by="balance", order_by_descending=True).where(
            "Balance", FilterOperator.GREATER_THAN_OR_EQUAL, "40"
        )
        assert [a.name for a in await repo.fetch_filtered(query)] == ["Jenny Jones", "Rocky"]

    async def test_like_wildcards_are_escaped(self, repo):
        await repo.insert(Account(name="100% real"))
        query = QueryFilter().where("Name", FilterOperator.CONTAINS, "0%")
        assert [a.name for a in await repo.fetch_filtered(query)] == ["100% real"]
        query = QueryFilter().where("Name", FilterOperator.CONTAINS, "_")
        assert await repo.fetch_filtered(query) == []

    async def test_projection_leaves_other_fields_empty(self, repo):
        query = QueryFilter(include_fields=["name"], order_by="name")
        rows = await repo.fetch_filtered(query)
        assert [r.name for r in rows] == ["Isadora Jarr", "Jenny Jones", "Rocky"]
        assert all(r.balance is None and r.id is None for r in rows)


class TestMutations:
    async def test_update(self, repo):
        assert await repo.update(Account(id=3, name="Rocky B", balance=5)) is not None
        assert (await repo.fetch_by_id(3)).balance == 5

    async def test_update_missing_returns_none(self, repo):
        assert await repo.update(Account(id=42, name="nobody")) is None

    async def test_delete_by_id_and_delete(self, repo):
        assert await repo.delete_by_id(1) is True
        assert await repo.delete_by_id(1) is False
        assert await repo.delete(Account(id=2)) is True
        assert [a.id for a in await repo.fetch_all()] == [3]

    async def test_delete_all_is_idempotent(self, repo):
        assert await repo.delete_all() is True
        assert await repo.delete_all() is True
        assert await repo.fetch_all() == []


class TestConstraints:
    async def test_not_null_violation_on_allocated_key(self, engine):
        strict = SqlRepository(Account, engine, table_name="strict_ledgers")
        with pytest.raises(ValidationException) as excinfo:
            await strict.insert(Account(name=None))
        assert excinfo.value.code == "CONSTRAINT_VIOLATION"
        assert (await strict.insert(Account(name="kept"))).id == 1

    async def test_not_null_violation_on_generated_key(self, engine):
        strict = SqlRepository(Account, engine, table_name="strict_accounts", identity_generated=True)
        with pytest.raises(ValidationException) as excinfo:
            await strict.insert(Account(name=None))
        assert excinfo.value.code == "CONSTRAINT_VIOLATION"

    async def test_not_null_violation_with_free_explicit_key(self, engine):
        strict = SqlRepository(Account, engine, table_name="strict_ledgers")
        with pytest.raises(ValidationException):
            await strict.insert(Account(id=5, name=None))
        assert await strict.fetch_all() == []

    async def test_empty_string_key_is_required(self, engine):
        badges = SqlRepository(Badge, engine, table_name="badges", id_field="code")
        with pytest.raises(ValidationException) as excinfo:
            await badges.insert(Badge(label="Unnamed"))
        assert excinfo.value.code == "IDENTITY_REQUIRED"
        assert (await badges.insert(Badge(code="gold", label="Gold"))).code == "gold"
        assert [b.code for b in await badges.fetch_all()] == ["gold"]


@pytest.fixture
async def unreachable(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'accounts.db'}")
    yield SqlRepository(Account, engine, table_name="accounts", identity_generated=True)
    await engine.dispose()


class TestUnreachableDatabase:
    async def test_reads_return_none(self, unreachable, caplog):
        with caplog.at_level(logging.WARNING):
            assert await unreachable.fetch_all() is None
            assert await unreachable.fetch_filtered(QueryFilter().where("name", FilterOperator.EQUALS, "x")) is None
            assert await unreachable.fetch_by_id(1) is None
        assert "fetch_all on" in caplog.text

    async def test_writes_return_failure(self, unreachable):
        assert await unreachable.insert(Account(name="Lost")) is None
        assert await unreachable.insert(Account(id=9, name="Lost")) is None
        assert await unreachable.update(Account(id=1, name="Lost")) is None
        assert await unreachable.delete_by_id(1) is False
        assert await unreachable.delete_all() is False
