"""
Services for SyncBridge.

The Firestore, Cloud Scheduler and Secret Manager services are imported from
their own modules so that the store contract can be used without the Google
Cloud client libraries being configured.
"""

from .store import SyncStore, InMemoryStore

__all__ = [
    "SyncStore",
    "InMemoryStore",
]
