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
"""Engine and session wiring from configuration."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from anyrepo.config.properties import RelationalProperties
from anyrepo.core.config import Config
from anyrepo.data.relational.sqlalchemy.entity import Base

_logger = logging.getLogger(__name__)


def engine_from_config(config: Config) -> AsyncEngine:
    """Create the async engine described by ``anyrepo.data.relational.*``."""
    props = config.bind(RelationalProperties)
    return create_async_engine(props.url, echo=props.echo)


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table declared on :class:`Base` that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _logger.info("Database schema initialized (%d tables)", len(Base.metadata.tables))
