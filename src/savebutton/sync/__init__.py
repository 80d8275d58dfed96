"""
Sync -- set-difference reconciliation of ~/.kaya with the account server.

Anga and meta travel both ways. Words only come down.
"""

from .client import PushOutcome, RemoteStore
from .engine import SyncEngine
from .models import Collection, CollectionKind, SyncReport, SyncResult

__all__ = [
    "Collection",
    "CollectionKind",
    "PushOutcome",
    "RemoteStore",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
]
