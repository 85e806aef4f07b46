"""One GameContext per identity, with per-identity locking for concurrent callers."""
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from .context import GameContext


class ProfileRegistry:
    def __init__(self, factory: Callable[[str], GameContext]):
        self._factory = factory
        self._contexts: Dict[str, GameContext] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @staticmethod
    def _key(identity: str) -> str:
        return identity.strip().lower()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def get(self, identity: str) -> GameContext:
        """Return the context for ``identity``, loading its snapshot on first use."""
        key = self._key(identity)
        with self._lock_for(key):
            return self._get_unlocked(key, identity)

    def _get_unlocked(self, key: str, identity: str) -> GameContext:
        ctx = self._contexts.get(key)
        if ctx is None:
            ctx = self._factory(identity)
            ctx.load()
            self._contexts[key] = ctx
        return ctx

    @contextmanager
    def session(self, identity: str) -> Iterator[GameContext]:
        """Hold the identity's lock while the caller mutates its context."""
        key = self._key(identity)
        with self._lock_for(key):
            yield self._get_unlocked(key, identity)

    def exists(self, identity: str) -> bool:
        return self.get(identity).has_profile

    def identities(self):
        with self._guard:
            return sorted(self._contexts)


__all__ = ["ProfileRegistry"]
