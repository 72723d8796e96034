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
"""Message types exchanged through a sync hub."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class SyncAction(str, Enum):
    """What happened to a record on the peer that sent the message."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    DELETE_ALL = "delete-all"


@dataclass(frozen=True)
class SyncMessage:
    """``(table, action, id)`` broadcast to every other peer.

    ``record_id`` is the remote identity rendered as a string, and is empty
    for :attr:`SyncAction.DELETE_ALL`.
    """

    table: str
    action: SyncAction
    record_id: str
    sender: str
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
