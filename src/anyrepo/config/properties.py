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
"""Typed configuration property classes for each AnyRepo subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field

from anyrepo.core.config import config_properties


@config_properties(prefix="anyrepo.data.relational")
@dataclass
class RelationalProperties:
    """Configuration for the SQL adapters (anyrepo.data.relational.*)."""

    url: str = "sqlite+aiosqlite:///./anyrepo.db"
    echo: bool = False


@config_properties(prefix="anyrepo.data.document")
@dataclass
class DocumentProperties:
    """Configuration for the local document table (anyrepo.data.document.*)."""

    uri: str = "mongodb://localhost:27017"
    database: str = "RepositoryDemo"


@config_properties(prefix="anyrepo.client")
@dataclass
class ClientProperties:
    """Configuration for the remote API adapter (anyrepo.client.*)."""

    base_url: str = "http://localhost:5000/"
    timeout: int = 30


@config_properties(prefix="anyrepo.logging")
@dataclass
class LoggingProperties:
    """Log rendering (anyrepo.logging.*).

    ``level`` maps logger names to levels; the ``root`` entry sets the default.
    """

    format: str = "console"
    level: dict[str, str] = field(default_factory=lambda: {"root": "INFO"})


@config_properties(prefix="anyrepo.sync")
@dataclass
class SyncProperties:
    """Configuration for offline/online synchronization (anyrepo.sync.*).

    Store names are derived from the record store name plus these suffixes,
    e.g. ``Customer_Keys`` and ``Customer_LocalTransactions``.
    """

    keys_suffix: str = "_Keys"
    transactions_suffix: str = "_LocalTransactions"
    dead_letter_suffix: str = "_DeadLetters"
    max_replay_attempts: int = 5
