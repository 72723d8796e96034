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
"""In-memory sync hub for tests and single-process deployments."""

from __future__ import annotations

import fnmatch
import logging

from anyrepo.events.ports.outbound import SyncHandler
from anyrepo.events.types import SyncAction, SyncMessage

logger = logging.getLogger(__name__)


class InMemorySyncHub:
    """Fans messages out to subscribers whose table pattern matches.

    Patterns use shell wildcards (``"Customer*"`` matches ``"Customer"``).
    The sending client never receives its own message.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[str, str, SyncHandler]] = []

    def subscribe(self, client_id: str, table_pattern: str, handler: SyncHandler) -> None:
        self._handlers.append((client_id, table_pattern, handler))

    def unsubscribe(self, client_id: str) -> None:
        self._handlers = [h for h in self._handlers if h[0] != client_id]

    async def publish(self, sender: str, table: str, action: SyncAction, record_id: str) -> None:
        message = SyncMessage(table=table, action=action, record_id=record_id, sender=sender)
        for client_id, pattern, handler in list(self._handlers):
            if client_id == sender or not fnmatch.fnmatch(table, pattern):
                continue
            try:
                await handler(message)
            except Exception:
                # delivery continues past a failing handler
                logger.exception("Sync handler for client %s failed on %s %s", client_id, action.value, table)
