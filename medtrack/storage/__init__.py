# Storage layer
from .local import LocalStore
from .remote import RemoteStore

__all__ = ["LocalStore", "RemoteStore"]
