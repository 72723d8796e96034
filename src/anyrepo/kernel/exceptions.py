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
"""Exceptions raised by AnyRepo.

Everything derives from :class:`AnyRepoException`, which carries a
machine-readable ``code`` (``FILTER_VALUE_INVALID``, ``DUPLICATE_KEY`` ...)
and a ``context`` dict naming the field, operator, value or table involved.

"Not found" is not an error for repositories: lookups return ``None`` and
deletes return ``False``. Only the ``require_*`` helpers in
:mod:`anyrepo.data.lookup` raise :class:`ResourceNotFoundException`.
"""

from __future__ import annotations

from typing import Any


class AnyRepoException(Exception):
    """Root of the AnyRepo error hierarchy.

    Args:
        message: What went wrong, for humans.
        code: Stable identifier for programs to branch on.
        context: Offending field, operator, value, table or id.
    """

    def __init__(self, message: str, code: str | None = None, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict[str, Any] = dict(context) if context else {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, code={self.code!r})"


class BusinessException(AnyRepoException):
    """The caller asked for something the records or their types do not allow."""


class ConfigurationException(BusinessException):
    """A filter or adapter refers to a field, identity or record type that does not exist."""


class ValidationException(BusinessException):
    """A supplied value is unusable."""


class InvalidValueException(ValidationException):
    """A filter literal does not parse as the field's declared type."""


class UnsupportedOperatorException(ValidationException):
    """The comparison operator is not legal for the field's declared type."""


class ResourceNotFoundException(BusinessException):
    """A record required to exist was not found."""


class ConflictException(BusinessException):
    """The write conflicts with what is already stored."""


class DuplicateKeyException(ConflictException):
    """An insert collides with an identity that already exists."""


class InfrastructureException(AnyRepoException):
    """The backing store or the network failed."""


class TransportException(InfrastructureException):
    """A remote call failed: connection error, timeout, error status or malformed body."""
