from .base import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    BatchOp,
    Delete,
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    Insert,
    StoreError,
    Update,
)
from .memory import InMemoryDocumentStore

__all__ = [
    "SERVER_TIMESTAMP",
    "ArrayRemove",
    "ArrayUnion",
    "BatchOp",
    "Delete",
    "DocumentExists",
    "DocumentNotFound",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Insert",
    "StoreError",
    "Update",
]
