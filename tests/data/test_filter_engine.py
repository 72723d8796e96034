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
"""Tests for QueryFilterEngine in-memory evaluation and projection."""

from dataclasses import dataclass

import pytest

from anyrepo.data.engine import QueryFilterEngine
from anyrepo.data.query_filter import FilterOperator, FilterProperty, QueryFilter
from anyrepo.kernel.exceptions import ConfigurationException, UnsupportedOperatorException


@dataclass
class Customer:
    id: int = 0
    name: str = ""
    email: str = ""
    age: int | None = None


@pytest.fixture
def engine():
    return QueryFilterEngine.for_type(Customer)


@pytest.fixture
def customers():
    return [
        Customer(id=1, name="Isadora Jarr", email="isadora@example.com", age=41),
        Customer(id=2, name="Jenny Jones", email="jenny@example.com", age=29),
        Customer(id=3, name="Rocky", email="rocky@example.com", age=None),
        Customer(id=4, name="james", email="james@example.org", age=35),
    ]


class TestEvaluate:
    def test_empty_filter_is_identity(self, engine, customers):
        assert list(engine.evaluate(QueryFilter(), customers)) == customers

    def test_starts_with_scenario(self, engine):
        records = [Customer(id=1, name="Isadora Jarr"), Customer(id=2, name="Jenny Jones")]
        query = QueryFilter(order_by="Name").where("Name", FilterOperator.STARTS_WITH, "J")
        assert [c.name for c in engine.evaluate(query, records)] == ["Jenny Jones"]

    def test_conditions_are_conjoined(self, engine, customers):
        query = (
            QueryFilter()
            .where("Name", FilterOperator.STARTS_WITH, "j")
            .where("Email", FilterOperator.ENDS_WITH, ".org")
        )
        assert [c.id for c in engine.evaluate(query, customers)] == [4]

    def test_order_by_descending(self, engine, customers):
        query = QueryFilter(order_by="age", order_by_descending=True)
        assert [c.id for c in engine.evaluate(query, customers)] == [1, 4, 2, 3]

    def test_order_by_ascending_puts_none_first(self, engine, customers):
        query = QueryFilter(order_by="age")
        assert [c.id for c in engine.evaluate(query, customers)] == [3, 2, 4, 1]

    def test_ordering_is_stable(self, engine):
        records = [Customer(id=i, name="same") for i in range(1, 6)]
        assert [c.id for c in engine.evaluate(QueryFilter(order_by="name"), records)] == [1, 2, 3, 4, 5]

    def test_null_field_never_matches(self, engine, customers):
        query = QueryFilter().where("age", FilterOperator.NOT_EQUALS, "29")
        assert [c.id for c in engine.evaluate(query, customers)] == [1, 4]

    def test_unknown_field_fails_loudly(self, engine, customers):
        query = QueryFilter().where("Nmae", FilterOperator.EQUALS, "x")
        with pytest.raises(ConfigurationException):
            engine.evaluate(query, customers)

    def test_unknown_include_field_fails(self, engine, customers):
        with pytest.raises(ConfigurationException):
            engine.evaluate(QueryFilter(include_fields=["name", "nickname"]), customers)

    def test_unknown_order_field_fails(self, engine, customers):
        with pytest.raises(ConfigurationException):
            engine.evaluate(QueryFilter(order_by="missing"), customers)

    def test_validation_happens_before_iteration(self, engine):
        query = QueryFilter().where("age", FilterOperator.CONTAINS, "3")
        with pytest.raises(UnsupportedOperatorException):
            engine.evaluate(query, [])

    def test_result_is_single_pass(self, engine, customers):
        result = engine.evaluate(QueryFilter(), customers)
        assert len(list(result)) == 4
        assert list(result) == []


class TestProject:
    def test_include_fields(self, engine, customers):
        query = QueryFilter(include_fields=["Name"])
        assert engine.project(customers[:2], query) == [{"name": "Isadora Jarr"}, {"name": "Jenny Jones"}]

    def test_no_include_fields_returns_everything(self, engine, customers):
        row = engine.project(customers[:1], QueryFilter())[0]
        assert set(row) == {"id", "name", "email", "age"}

    def test_include_does_not_affect_matching(self, engine, customers):
        query = QueryFilter(include_fields=["email"]).where("name", FilterOperator.EQUALS, "ROCKY")
        matched = list(engine.evaluate(query, customers))
        assert engine.project(matched, query) == [{"email": "rocky@example.com"}]


class TestWireModel:
    def test_accepts_original_wire_names(self):
        query = QueryFilter.model_validate(
            {
                "IncludePropertyNames": ["Name"],
                "FilterProperties": [
                    {"Name": "Name", "Value": "J", "Operator": "StartsWith", "CaseSensitive": False},
                    {"Name": "Id", "Value": 2, "Operator": 6},
                ],
                "OrderByPropertyName": "Name",
                "OrderByDescending": True,
            }
        )
        assert query.include_fields == ("Name",)
        assert query.conditions[0].operator is FilterOperator.STARTS_WITH
        assert query.conditions[1].operator is FilterOperator.GREATER_THAN
        assert query.conditions[1].value == "2"
        assert query.order_by_descending is True

    def test_to_wire_uses_aliases(self):
        wire = QueryFilter().where("Name", FilterOperator.CONTAINS, "o").to_wire()
        assert wire["FilterProperties"] == [
            {"Name": "Name", "Value": "o", "Operator": "Contains", "CaseSensitive": False}
        ]
        assert wire["OrderByPropertyName"] == ""

    def test_operator_lookup_by_name(self):
        assert FilterOperator("lessthanorequal") is FilterOperator.LESS_THAN_OR_EQUAL
        assert FilterOperator("GREATER_THAN") is FilterOperator.GREATER_THAN

    def test_filter_is_immutable(self):
        query = QueryFilter()
        with pytest.raises(Exception):
            query.order_by = "name"  # type: ignore[misc]

    def test_where_returns_new_filter(self):
        base = QueryFilter()
        extended = base.where("name", FilterOperator.EQUALS, "x")
        assert base.conditions == ()
        assert extended.conditions == (FilterProperty(name="name", value="x"),)
