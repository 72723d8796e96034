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
"""Tests for ApiRepository against an httpx mock transport."""

import json
from dataclasses import dataclass

import httpx

from anyrepo.client import ApiRepository
from anyrepo.core.config import Config
from anyrepo.data.ports.outbound import RepositoryPort
from anyrepo.data.query_filter import FilterOperator, QueryFilter


@dataclass
class Customer:
    id: int = 0
    name: str = ""
    email: str = ""


JENNY = {"id": 2, "name": "Jenny Jones", "email": "jenny@example.com"}


def ok(data):
    return httpx.Response(200, json={"success": True, "errorMessages": [], "data": data})


class Recorder:
    def __init__(self, handler):
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)


def make_repo(handler) -> tuple[ApiRepository, Recorder]:
    recorder = Recorder(handler)
    client = httpx.AsyncClient(base_url="http://api.test", transport=httpx.MockTransport(recorder))
    return ApiRepository(Customer, client, controller="customer"), recorder


class TestRoutes:
    def test_conforms_to_port(self):
        repo, _ = make_repo(lambda r: ok(None))
        assert isinstance(repo, RepositoryPort)

    async def test_fetch_all(self):
        repo, rec = make_repo(lambda r: ok([JENNY]))
        assert await repo.fetch_all() == [Customer(**JENNY)]
        assert (rec.requests[0].method, rec.requests[0].url.path) == ("GET", "/customer")

    async def test_fetch_filtered_posts_wire_body(self):
        repo, rec = make_repo(lambda r: ok([JENNY]))
        query = QueryFilter(order_by="Name").where("Name", FilterOperator.STARTS_WITH, "J")
        assert await repo.fetch_filtered(query) == [Customer(**JENNY)]
        request = rec.requests[0]
        assert (request.method, request.url.path) == ("POST", "/customer/getwithfilter")
        body = json.loads(request.content)
        assert body["OrderByPropertyName"] == "Name"
        assert body["FilterProperties"] == [
            {"Name": "Name", "Value": "J", "Operator": "StartsWith", "CaseSensitive": False}
        ]

    async def test_fetch_by_id(self):
        repo, rec = make_repo(lambda r: ok(JENNY))
        assert await repo.fetch_by_id(2) == Customer(**JENNY)
        assert rec.requests[0].url.path == "/customer/2"

    async def test_insert_returns_server_copy(self):
        repo, rec = make_repo(lambda r: ok({**json.loads(r.content), "id": 17}))
        saved = await repo.insert(Customer(name="New"))
        assert saved == Customer(id=17, name="New")
        assert rec.requests[0].method == "POST"

    async def test_update_uses_put(self):
        repo, rec = make_repo(lambda r: ok(json.loads(r.content)))
        assert await repo.update(Customer(**JENNY)) == Customer(**JENNY)
        assert (rec.requests[0].method, rec.requests[0].url.path) == ("PUT", "/customer")

    async def test_delete_routes(self):
        repo, rec = make_repo(lambda r: ok(None))
        assert await repo.delete_by_id(2) is True
        assert await repo.delete(Customer(id=3)) is True
        assert await repo.delete_all() is True
        assert [(r.method, r.url.path) for r in rec.requests] == [
            ("DELETE", "/customer/2"),
            ("DELETE", "/customer/3"),
            ("GET", "/customer/deleteall"),
        ]

    async def test_string_keys_are_escaped(self):
        repo, rec = make_repo(lambda r: ok(None))
        await repo.fetch_by_id("a/b")
        assert rec.requests[0].url.raw_path == b"/customer/a%2Fb"


class TestFailures:
    async def test_unsuccessful_envelope(self):
        fail = httpx.Response(200, json={"success": False, "errorMessages": ["nope"], "data": None})
        repo, _ = make_repo(lambda r: fail)
        assert await repo.fetch_all() == []
        assert await repo.fetch_by_id(1) is None
        assert await repo.insert(Customer(name="x")) is None

    async def test_http_error_status(self):
        repo, _ = make_repo(lambda r: httpx.Response(500))
        assert await repo.fetch_all() is None
        assert await repo.update(Customer(id=1)) is None
        assert await repo.delete_by_id(1) is False
        assert await repo.delete_all() is False

    async def test_connection_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        repo, _ = make_repo(refuse)
        assert await repo.fetch_filtered(QueryFilter()) is None
        assert await repo.fetch_by_id(1) is None
        assert await repo.delete(Customer(id=1)) is False

    async def test_malformed_body(self):
        repo, _ = make_repo(lambda r: httpx.Response(200, text="<html>"))
        assert await repo.fetch_by_id(1) is None


class TestConfiguration:
    async def test_from_config_uses_client_properties(self):
        config = Config({"anyrepo": {"client": {"base-url": "http://remote.test/api/", "timeout": 5}}})
        repo = ApiRepository.from_config(Customer, config, controller="/customer/")
        assert repo.controller == "customer"
        assert repo._client.base_url == httpx.URL("http://remote.test/api/")
        assert repo._client.timeout.connect == 5
        await repo.close()
