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
"""Logging port: how an application hands AnyRepo its log configuration."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from anyrepo.config.properties import LoggingProperties


@runtime_checkable
class LoggingPort(Protocol):
    """Configures rendering for both stdlib and structlog loggers."""

    def configure(self, properties: LoggingProperties) -> None: ...

    def get_logger(self, name: str) -> Any: ...

    def store_context(self, store: str) -> AbstractContextManager[None]:
        """Tag every log line emitted inside the block with ``store``."""
        ...
