"""
Customer session registry: one multi-tenant cart store per customer session
"""
import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

from config.settings import SESSION_IDLE_TTL_SECONDS, STORAGE_BACKEND, STORAGE_DIR
from services.auto_clear_service import AutoClearTimer
from services.cart_store import MultiTenantCartStore, epoch_ms
from services.storage_service import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from services.utility_service import UtilityService

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_session_id(session_id: str) -> bool:
    return bool(SESSION_ID_PATTERN.match(session_id))


class CartSessionRegistry:
    """
    A session plays the part of one browser: it owns one storage area and
    one cart store covering every restaurant the customer visits.

    Open sessions are held in memory until the sweep finds them empty, or
    idle past the TTL with no auto-clear counting down. File-backed sessions
    closed that way with a pending clear are remembered in pending_sessions
    so the sweep can still reach them without opening every file on disk.
    """

    def __init__(self, storage_backend: str = STORAGE_BACKEND, storage_dir: str = STORAGE_DIR,
                 clock: Callable[[], int] = epoch_ms, timer: Optional[AutoClearTimer] = None,
                 idle_ttl_seconds: int = SESSION_IDLE_TTL_SECONDS):
        self.storage_backend = storage_backend
        self.storage_dir = Path(storage_dir)
        self.clock = clock
        self.timer = timer or AutoClearTimer()
        self.idle_ttl_ms = idle_ttl_seconds * 1000
        self.sessions: Dict[str, MultiTenantCartStore] = {}
        self.last_access: Dict[str, int] = {}
        self.pending_sessions: Set[str] = set()
        self._disk_indexed = False

    def _create_storage(self, session_id: str) -> KeyValueStore:
        if self.storage_backend == "file":
            return JsonFileKeyValueStore(self.storage_dir / f"{session_id}.json")
        return MemoryKeyValueStore()

    def _create_store(self, session_id: str) -> MultiTenantCartStore:
        return MultiTenantCartStore(self._create_storage(session_id), clock=self.clock, timer=self.timer)

    def get_or_create(self, session_id: Optional[str] = None) -> Tuple[str, MultiTenantCartStore]:
        """Return the session's store, creating the session when needed"""
        if not session_id:
            session_id = UtilityService.generate_session_id()
        elif not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")

        store = self.sessions.get(session_id)
        if store is None:
            store = self._create_store(session_id)
            self.sessions[session_id] = store
            self.pending_sessions.discard(session_id)
            logger.debug(f"Opened cart session {session_id}")
        self.last_access[session_id] = self.clock()
        return session_id, store

    def persisted_session_ids(self) -> List[str]:
        if self.storage_backend != "file" or not self.storage_dir.exists():
            return []
        return sorted(path.stem for path in self.storage_dir.glob("*.json") if is_valid_session_id(path.stem))

    def _index_disk(self):
        """Find sessions left on disk by an earlier run that still have a clear pending"""
        self._disk_indexed = True
        for session_id in self.persisted_session_ids():
            if session_id not in self.sessions and self._create_store(session_id).has_pending_clear():
                self.pending_sessions.add(session_id)
        if self.pending_sessions:
            logger.info(f"Found {len(self.pending_sessions)} stored sessions with a pending auto-clear")

    def close_session(self, session_id: str):
        store = self.sessions.pop(session_id, None)
        self.last_access.pop(session_id, None)
        if store is not None and self.storage_backend == "file" and store.has_pending_clear():
            self.pending_sessions.add(session_id)

    def evict_idle(self) -> List[str]:
        """Release open sessions that are empty, or idle past the TTL with nothing pending"""
        now = self.clock()
        evicted = []
        for session_id, store in list(self.sessions.items()):
            idle_ms = now - self.last_access.get(session_id, now)
            if store.is_empty() or (idle_ms > self.idle_ttl_ms and not store.has_pending_clear()):
                self.close_session(session_id)
                evicted.append(session_id)
        if evicted:
            logger.debug(f"Released {len(evicted)} cart sessions")
        return evicted

    def sweep_all(self) -> Dict[str, List[str]]:
        """
        Run the auto-clear sweep for every open session and every stored
        session known to have a clear pending, then release idle sessions.
        """
        if not self._disk_indexed and self.storage_backend == "file":
            self._index_disk()

        cleared: Dict[str, List[str]] = {}
        for session_id, store in list(self.sessions.items()):
            tenants = store.sweep_expired()
            if tenants:
                cleared[session_id] = tenants

        for session_id in sorted(self.pending_sessions):
            store = self._create_store(session_id)
            tenants = store.sweep_expired()
            if tenants:
                cleared[session_id] = tenants
            if not store.has_pending_clear():
                self.pending_sessions.discard(session_id)

        self.evict_idle()
        return cleared
