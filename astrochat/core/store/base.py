from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence, Union


class StoreError(Exception):
    """Raised by an adapter when the underlying storage call fails."""


class DocumentNotFound(StoreError):
    """Update addressed a document that does not exist."""


class DocumentExists(StoreError):
    """Insert addressed an id that is already taken."""


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    # singleton survives copies of the documents it is embedded in
    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()
"""Placeholder replaced by the store's own clock at write time."""


class _ArrayTransform:
    def __init__(self, *values: Any) -> None:
        self.values = tuple(values)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.values == self.values  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.values!r}"


class ArrayUnion(_ArrayTransform):
    """Append values that are not already present in the array field."""


class ArrayRemove(_ArrayTransform):
    """Drop every occurrence of the given values from the array field."""


@dataclass
class Insert:
    collection: str
    doc_id: str
    doc: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Update:
    collection: str
    doc_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Delete:
    collection: str
    doc_id: str


BatchOp = Union[Insert, Update, Delete]


class DocumentStore(Protocol):
    """Schemaless document collections keyed by id.

    Documents are plain dicts; the ``id`` key is filled in on reads. Equality
    filters match scalar fields, ``contains`` filters match array members.
    """

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    async def find_one(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        raise NotImplementedError

    async def find_many(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Matching documents in insertion order."""
        raise NotImplementedError

    async def insert(self, collection: str, doc: Mapping[str, Any], *, doc_id: str | None = None) -> str:
        raise NotImplementedError

    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, collection: str, doc_id: str) -> None:
        """Idempotent delete."""
        raise NotImplementedError

    async def atomic_batch(self, ops: Sequence[BatchOp]) -> datetime:
        """Apply every op or none of them; returns the commit timestamp.

        Every ``SERVER_TIMESTAMP`` written by the batch resolves to that instant.
        """
        raise NotImplementedError


def matches(
    doc: Mapping[str, Any],
    filters: Mapping[str, Any] | None,
    contains: Mapping[str, Any] | None,
) -> bool:
    for key, expected in (filters or {}).items():
        if get_path(doc, key) != expected:
            return False
    for key, member in (contains or {}).items():
        value = get_path(doc, key)
        if not isinstance(value, list) or member not in value:
            return False
    return True


def get_path(doc: Mapping[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def resolve_value(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Mapping):
        return {k: resolve_value(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_value(v, now) for v in value]
    return value


def apply_update(doc: dict[str, Any], fields: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    """Return a copy of ``doc`` with dotted-path field writes and transforms applied."""
    result = copy.deepcopy(doc)
    for path, value in fields.items():
        parts = path.split(".")
        target = result
        for part in parts[:-1]:
            nested = target.get(part)
            if not isinstance(nested, dict):
                nested = {}
                target[part] = nested
            target = nested
        leaf = parts[-1]
        if isinstance(value, ArrayUnion):
            current = list(target.get(leaf) or [])
            for item in resolve_value(list(value.values), now):
                if item not in current:
                    current.append(item)
            target[leaf] = current
        elif isinstance(value, ArrayRemove):
            removed = resolve_value(list(value.values), now)
            target[leaf] = [item for item in (target.get(leaf) or []) if item not in removed]
        else:
            target[leaf] = copy.deepcopy(resolve_value(value, now))
    return result


__all__ = [
    "SERVER_TIMESTAMP",
    "ArrayRemove",
    "ArrayUnion",
    "BatchOp",
    "Delete",
    "DocumentExists",
    "DocumentNotFound",
    "DocumentStore",
    "Insert",
    "StoreError",
    "Update",
    "apply_update",
    "get_path",
    "matches",
    "resolve_value",
]
