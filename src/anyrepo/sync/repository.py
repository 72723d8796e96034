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
"""Offline-capable repository that mirrors a remote store locally.

While online every write goes to the remote repository first and is then
mirrored into a local table under a local identity. While offline writes go
only to the local table and are appended to a pending-mutation queue; when
connectivity returns the queue is replayed against the remote repository in
order, and each replayed insert records which remote identity its local
identity became.

Peers are told about every confirmed remote change through a sync hub, and
changes announced by peers are applied to the local mirror.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Callable
from typing import Any, Generic, TypeVar

import structlog

from anyrepo.config.properties import SyncProperties
from anyrepo.data.document.mongodb.repository import LocalDocumentRepository
from anyrepo.data.ports.outbound import LocalTablePort, RepositoryPort
from anyrepo.data.query_filter import QueryFilter
from anyrepo.data.record import RecordDescriptor
from anyrepo.events.ports.outbound import SyncHubPort
from anyrepo.events.types import SyncAction, SyncMessage
from anyrepo.kernel.exceptions import AnyRepoException, DuplicateKeyException
from anyrepo.sync.key_map import KeyReconciliationMap
from anyrepo.sync.mutation_queue import PendingMutationQueue
from anyrepo.sync.types import DataChangedEvent, KeyMapping, MutationKind, PendingMutation

T = TypeVar("T")
ID = TypeVar("ID")

logger = structlog.get_logger("anyrepo.sync")

DataChangedListener = Callable[[DataChangedEvent], Any]
OnlineStatusListener = Callable[[bool], Any]


class SyncRepository(Generic[T, ID]):
    """:class:`RepositoryPort` that keeps working offline.

    Args:
        record_type: Record class shared by the remote and local sides.
        remote: Repository for the authoritative store (typically
            :class:`~anyrepo.client.repository.ApiRepository`).
        table: Local table store holding the mirror, key map and queue.
        hub: Optional broadcast channel to other clients.
        store_name: Local table name; defaults to the record type's name.
        properties: Store suffixes and replay limits.
        online: Initial connectivity.
    """

    def __init__(
        self,
        record_type: type[T],
        remote: RepositoryPort[T, ID],
        table: LocalTablePort,
        hub: SyncHubPort | None = None,
        *,
        store_name: str | None = None,
        id_field: str | None = None,
        properties: SyncProperties | None = None,
        online: bool = True,
        client_id: str | None = None,
    ) -> None:
        props = properties or SyncProperties()
        self._descriptor: RecordDescriptor[T] = RecordDescriptor.of(record_type, id_field)
        self._remote = remote
        self._local: LocalDocumentRepository[T, Any] = LocalDocumentRepository(record_type, table, store_name, id_field)
        self.store_name = self._local.store_name
        self._keys = KeyReconciliationMap(table, self.store_name + props.keys_suffix)
        self._queue = PendingMutationQueue(
            table,
            self.store_name + props.transactions_suffix,
            self.store_name + props.dead_letter_suffix,
            props.max_replay_attempts,
        )
        self._hub = hub
        self.client_id = client_id or uuid.uuid4().hex
        self.is_online = online
        self.data_changed: list[DataChangedListener] = []
        self.online_status_changed: list[OnlineStatusListener] = []
        self._sync_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()
        self._opened = False
        if hub is not None:
            hub.subscribe(self.client_id, self.store_name, self._on_sync_message)

    @property
    def keys(self) -> KeyReconciliationMap:
        return self._keys

    @property
    def queue(self) -> PendingMutationQueue:
        return self._queue

    @property
    def local(self) -> LocalDocumentRepository[T, Any]:
        return self._local

    async def _ensure_open(self) -> None:
        if not self._opened:
            await self._keys.open()
            await self._queue.open()
            self._opened = True

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def on_connectivity_changed(self, is_online: bool) -> asyncio.Task[None]:
        """Connectivity callback for the environment; schedules the transition and returns at once."""
        task = asyncio.get_running_loop().create_task(self.set_online(is_online))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def set_online(self, is_online: bool) -> None:
        self.is_online = is_online
        logger.info("connectivity_changed", store=self.store_name, online=is_online)
        if is_online:
            await self.sync_local_to_server()
        await _notify(self.online_status_changed, is_online)

    async def wait_idle(self) -> None:
        """Wait for every scheduled connectivity transition to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_all(self) -> list[T] | None:
        """All records; online this also refreshes the local mirror.

        The mirror is left alone while queued offline writes are waiting,
        since replacing it would drop their local identities.
        """
        if not self.is_online:
            return await self._local.fetch_all()
        records = await self._remote.fetch_all()
        if records is None:
            return None
        await self._ensure_open()
        if await self._queue.is_empty():
            await self._local.replace_all(records)
            ids = [self._descriptor.identity(r) for r in records]
            await self._keys.replace_all([KeyMapping(local_id=i, remote_id=i) for i in ids])
        else:
            logger.info("mirror_refresh_skipped", store=self.store_name, reason="pending mutations")
        return records

    async def fetch_filtered(self, query_filter: QueryFilter) -> list[T] | None:
        if self.is_online:
            return await self._remote.fetch_filtered(query_filter)
        return await self._local.fetch_filtered(query_filter)

    async def fetch_by_id(self, id: ID) -> T | None:
        if self.is_online:
            return await self._remote.fetch_by_id(id)
        return await self._local.fetch_by_id(id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, record: T) -> T | None:
        await self._ensure_open()
        if self.is_online:
            inserted = await self._remote.insert(record)
            if inserted is None:
                return None
            await self._mirror_insert(inserted)
            await self._publish(SyncAction.INSERT, self._descriptor.identity(inserted))
            return inserted

        local = await self._local.insert(record)
        local_id = self._descriptor.identity(local)
        await self._keys.provisional(local_id)
        await self._queue.append(MutationKind.INSERT, self._descriptor.to_primitive(local), local_id)
        return local

    async def update(self, record: T) -> T | None:
        await self._ensure_open()
        if self.is_online:
            updated = await self._remote.update(record)
            if updated is None:
                return None
            await self._mirror_update(updated)
            await self._publish(SyncAction.UPDATE, self._descriptor.identity(updated))
            return updated

        local = await self._local.update(record)
        if local is not None:
            await self._queue.append(
                MutationKind.UPDATE, self._descriptor.to_primitive(local), self._descriptor.identity(local)
            )
        return local

    async def delete_by_id(self, id: ID) -> bool:
        await self._ensure_open()
        if self.is_online:
            deleted = await self._remote.delete_by_id(id)
            if deleted:
                await self._mirror_delete(id)
                await self._publish(SyncAction.DELETE, id)
            return deleted

        existing = await self._local.fetch_by_id(id)
        if existing is None:
            return False
        deleted = await self._local.delete_by_id(id)
        if deleted:
            await self._queue.append(MutationKind.DELETE, self._descriptor.to_primitive(existing), id)
        return deleted

    async def delete(self, record: T) -> bool:
        return await self.delete_by_id(self._descriptor.identity(record))

    async def delete_all(self) -> None:
        await self._ensure_open()
        if self.is_online:
            if await self._remote.delete_all() is False:
                return
            await self._local.delete_all()
            await self._keys.clear()
            await self._publish(SyncAction.DELETE_ALL, "")
            return

        await self._local.delete_all()
        await self._keys.clear()
        # earlier queued writes are superseded
        await self._queue.clear()
        await self._queue.append(MutationKind.DELETE_ALL)

    # ------------------------------------------------------------------
    # Local mirror
    # ------------------------------------------------------------------

    async def _mirror_insert(self, remote_record: T) -> Any:
        """Store a remote record locally, under its own identity when that key is free."""
        remote_id = self._descriptor.identity(remote_record)
        try:
            local = await self._local.insert(remote_record)
        except DuplicateKeyException:
            unset = self._descriptor.unset_identity()
            local = await self._local.insert(self._descriptor.copy_with_identity(remote_record, unset))
        local_id = self._descriptor.identity(local)
        await self._keys.record(local_id, remote_id)
        return local_id

    async def _mirror_update(self, remote_record: T) -> None:
        remote_id = self._descriptor.identity(remote_record)
        local_id = await self._keys.local_id_for(remote_id)
        local = self._descriptor.copy_with_identity(remote_record, local_id)
        if await self._local.update(local) is None:
            await self._mirror_insert(remote_record)

    async def _mirror_delete(self, remote_id: Any) -> None:
        local_id = await self._keys.local_id_for(remote_id)
        await self._local.delete_by_id(local_id)
        await self._keys.forget_remote(remote_id)

    async def _publish(self, action: SyncAction, remote_id: Any) -> None:
        if self._hub is not None:
            record_id = "" if remote_id is None else str(remote_id)
            await self._hub.publish(self.client_id, self.store_name, action, record_id)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def sync_local_to_server(self) -> bool:
        """Replay queued offline writes against the remote store.

        Entries are replayed in queue order. A failing entry stays queued with
        its attempt count raised (or is dead-lettered once it reaches the
        limit) and does not stop the entries after it. Whatever the remote
        raises is logged and recorded as the entry's last error.

        Returns:
            ``True`` when every entry was replayed, ``False`` when offline or
            when at least one entry failed.
        """
        if not self.is_online:
            return False
        await self._ensure_open()
        async with self._sync_lock:
            entries = await self._queue.pending()
            if entries:
                logger.info("replay_started", store=self.store_name, pending=len(entries))
            all_replayed = True
            for entry in entries:
                if not self.is_online:
                    return False
                error = "remote store rejected the operation"
                try:
                    replayed = await self._replay(entry)
                except AnyRepoException as exc:
                    replayed, error = False, str(exc)
                except Exception as exc:
                    logger.exception(
                        "replay_entry_raised", store=self.store_name, seq=entry.seq, kind=entry.kind.value
                    )
                    replayed, error = False, f"{type(exc).__name__}: {exc}"
                if replayed:
                    await self._queue.remove(entry)
                else:
                    all_replayed = False
                    await self._queue.mark_failed(entry, error)
            return all_replayed

    async def _remote_id_for(self, local_id: Any) -> Any:
        mapping = await self._keys.for_local(local_id)
        if mapping is None:
            return local_id
        return mapping.remote_id

    async def _replay(self, entry: PendingMutation) -> bool:
        if entry.kind is MutationKind.DELETE_ALL:
            if await self._remote.delete_all() is False:
                return False
            await self._publish(SyncAction.DELETE_ALL, "")
            return True

        if entry.kind is MutationKind.INSERT:
            record = self._descriptor.from_primitive(entry.record or {})
            if not isinstance(self._descriptor.identity(record), str):
                # integer keys are assigned by the remote store
                record = self._descriptor.copy_with_identity(record, self._descriptor.unset_identity())
            inserted = await self._remote.insert(record)
            if inserted is None:
                return False
            remote_id = self._descriptor.identity(inserted)
            await self._keys.record(entry.record_id, remote_id)
            logger.info("insert_reconciled", store=self.store_name, local_id=entry.record_id, remote_id=remote_id)
            await self._publish(SyncAction.INSERT, remote_id)
            return True

        remote_id = await self._remote_id_for(entry.record_id)
        if remote_id is None:
            # the insert that creates this record has not been replayed
            return False

        if entry.kind is MutationKind.UPDATE:
            record = self._descriptor.copy_with_identity(self._descriptor.from_primitive(entry.record or {}), remote_id)
            if await self._remote.update(record) is None:
                return False
            await self._publish(SyncAction.UPDATE, remote_id)
            return True

        if not await self._remote.delete_by_id(remote_id):
            return False
        await self._keys.forget_local(entry.record_id)
        await self._publish(SyncAction.DELETE, remote_id)
        return True

    # ------------------------------------------------------------------
    # Peer messages
    # ------------------------------------------------------------------

    async def _on_sync_message(self, message: SyncMessage) -> None:
        if message.table != self.store_name:
            return
        await self._ensure_open()
        if message.action is SyncAction.INSERT:
            item = await self._remote.fetch_by_id(self._descriptor.coerce_identity(message.record_id))
            if item is not None:
                await self._mirror_insert(item)
        elif message.action is SyncAction.UPDATE:
            item = await self._remote.fetch_by_id(self._descriptor.coerce_identity(message.record_id))
            if item is not None:
                await self._mirror_update(item)
        elif message.action is SyncAction.DELETE:
            await self._mirror_delete(self._descriptor.coerce_identity(message.record_id))
        else:
            await self._local.delete_all()
            await self._keys.clear()
        logger.debug("peer_change_applied", store=self.store_name, action=message.action.value, id=message.record_id)
        await _notify(self.data_changed, DataChangedEvent(message.table, message.action.value, message.record_id))


async def _notify(listeners: list[Callable[[Any], Any]], payload: Any) -> None:
    for listener in list(listeners):
        result = listener(payload)
        if inspect.isawaitable(result):
            await result
