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
"""Offline/online synchronization: key reconciliation, mutation queue and the sync repository."""

from anyrepo.sync.key_map import KeyReconciliationMap
from anyrepo.sync.mutation_queue import PendingMutationQueue
from anyrepo.sync.repository import SyncRepository
from anyrepo.sync.types import DataChangedEvent, KeyMapping, MutationKind, PendingMutation

__all__ = [
    "DataChangedEvent",
    "KeyMapping",
    "KeyReconciliationMap",
    "MutationKind",
    "PendingMutation",
    "PendingMutationQueue",
    "SyncRepository",
]
