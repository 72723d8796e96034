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
"""Outbound port for broadcasting record changes to peers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from anyrepo.events.types import SyncAction, SyncMessage

SyncHandler = Callable[[SyncMessage], Awaitable[None]]


@runtime_checkable
class SyncHubPort(Protocol):
    """Broadcast channel: a message reaches every subscriber except its sender."""

    def subscribe(self, client_id: str, table_pattern: str, handler: SyncHandler) -> None: ...

    def unsubscribe(self, client_id: str) -> None: ...

    async def publish(self, sender: str, table: str, action: SyncAction, record_id: str) -> None: ...
