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
"""Repository that forwards every operation to a remote CRUD API.

Routes, relative to the client's base URL::

    GET    {controller}                 all records
    POST   {controller}/getwithfilter   filtered records (QueryFilter body)
    GET    {controller}/{id}            one record
    POST   {controller}                 insert
    PUT    {controller}                 update
    DELETE {controller}/{id}            delete
    GET    {controller}/deleteall       delete everything

Transport faults never reach the caller: they are logged and turned into a
failure result (``None`` or ``False``). A well-formed envelope with
``success: false`` yields an empty list or ``None``.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from anyrepo.client.envelope import EntityResponse, ListResponse
from anyrepo.config.properties import ClientProperties
from anyrepo.core.config import Config
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import RecordDescriptor
from anyrepo.kernel.exceptions import TransportException

T = TypeVar("T")
ID = TypeVar("ID")

logger = logging.getLogger(__name__)


class ApiRepository(Generic[T, ID]):
    """HTTP-backed :class:`~anyrepo.data.ports.outbound.RepositoryPort`."""

    def __init__(
        self,
        record_type: type[T],
        client: httpx.AsyncClient,
        controller: str | None = None,
        id_field: str | None = None,
    ) -> None:
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(record_type, id_field)
        self._client = client
        self.controller = (controller or self._descriptor.table_name).strip("/")

    @classmethod
    def from_config(
        cls,
        record_type: type[T],
        config: Config,
        controller: str | None = None,
        id_field: str | None = None,
    ) -> ApiRepository[T, ID]:
        props = config.bind(ClientProperties)
        client = httpx.AsyncClient(base_url=props.base_url, timeout=props.timeout)
        return cls(record_type, client, controller, id_field)

    @property
    def descriptor(self) -> RecordDescriptor[T]:
        return self._descriptor

    def _url(self, *parts: Any) -> str:
        return "/".join([self.controller, *(quote(str(p), safe="") for p in parts)])

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportException(
                f"{method} {url} failed: {exc}",
                code="TRANSPORT_FAILURE",
                context={"method": method, "url": url},
            ) from exc
        return response

    async def _entity(self, method: str, url: str, **kwargs: Any) -> T | None:
        response = await self._send(method, url, **kwargs)
        try:
            envelope = EntityResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportException(
                f"{method} {url} returned a malformed body",
                code="TRANSPORT_FAILURE",
                context={"method": method, "url": url},
            ) from exc
        if not envelope.success or envelope.data is None:
            if envelope.error_messages:
                logger.info("%s %s unsuccessful: %s", method, url, "; ".join(envelope.error_messages))
            return None
        return self._descriptor.from_primitive(envelope.data)

    async def _list(self, method: str, url: str, **kwargs: Any) -> list[T]:
        response = await self._send(method, url, **kwargs)
        try:
            envelope = ListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportException(
                f"{method} {url} returned a malformed body",
                code="TRANSPORT_FAILURE",
                context={"method": method, "url": url},
            ) from exc
        if not envelope.success:
            if envelope.error_messages:
                logger.info("%s %s unsuccessful: %s", method, url, "; ".join(envelope.error_messages))
            return []
        return [self._descriptor.from_primitive(item) for item in envelope.data or []]

    async def fetch_all(self) -> list[T] | None:
        try:
            return await self._list("GET", self._url())
        except TransportException as exc:
            logger.warning("fetch_all on %s failed: %s", self.controller, exc)
            return None

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T] | None:
        try:
            return await self._list("POST", self._url("getwithfilter"), json=query_filter.to_wire())
        except TransportException as exc:
            logger.warning("fetch_filtered on %s failed: %s", self.controller, exc)
            return None

    async def fetch_by_id(self, id: ID) -> T | None:
        try:
            return await self._entity("GET", self._url(id))
        except TransportException as exc:
            logger.warning("fetch_by_id(%s) on %s failed: %s", id, self.controller, exc)
            return None

    async def insert(self, record: T) -> T | None:
        try:
            return await self._entity("POST", self._url(), json=self._descriptor.to_primitive(record))
        except TransportException as exc:
            logger.warning("insert on %s failed: %s", self.controller, exc)
            return None

    async def update(self, record: T) -> T | None:
        try:
            return await self._entity("PUT", self._url(), json=self._descriptor.to_primitive(record))
        except TransportException as exc:
            logger.warning("update on %s failed: %s", self.controller, exc)
            return None

    async def delete_by_id(self, id: ID) -> bool:
        try:
            await self._send("DELETE", self._url(id))
        except TransportException as exc:
            logger.warning("delete_by_id(%s) on %s failed: %s", id, self.controller, exc)
            return False
        return True

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> bool:
        """Clear the remote table; ``False`` when the call did not go through."""
        try:
            await self._send("GET", self._url("deleteall"))
        except TransportException as exc:
            logger.warning("delete_all on %s failed: %s", self.controller, exc)
            return False
        return True

    async def close(self) -> None:
        await self._client.aclose()
