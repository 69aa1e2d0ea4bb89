"""Distributed job locks."""

from clipvote.services.lock.lease import LeaseLock, lock_key

__all__ = ["LeaseLock", "lock_key"]
