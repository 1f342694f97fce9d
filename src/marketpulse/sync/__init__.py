"""Remote synchronization of local state."""

from .adapter import LOCAL_USER_PREFIX, RemoteSyncAdapter, is_local_user
from .backend import RemoteBackend, SqlAlchemyBackend

__all__ = [
    "LOCAL_USER_PREFIX",
    "RemoteBackend",
    "RemoteSyncAdapter",
    "SqlAlchemyBackend",
    "is_local_user",
]
