"""In-memory session store."""

import copy
import logging
import threading
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from storage.base import StorageError
from tracking.session import FocusSession
from tracking.streaks import day_key

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    Thread-safe session store backed by a dictionary.
    
    Used by tests and by `focusflow run` when no data directory is wanted.
    """
    
    def __init__(self):
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
    
    def create_session(self, fields: Dict[str, Any]) -> str:
        session_id = uuid.uuid4().hex
        record = copy.deepcopy(fields)
        record["id"] = session_id
        record.setdefault("distractions", [])
        
        with self._lock:
            self._sessions[session_id] = record
        
        logger.debug(f"Created session {session_id}")
        return session_id
    
    def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise StorageError(f"Session {session_id} not found")
            record.update(copy.deepcopy(fields))
    
    def append_distraction(self, session_id: str, event: Dict[str, Any]) -> None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise StorageError(f"Session {session_id} not found")
            record.setdefault("distractions", []).append(dict(event))
    
    def get_session(self, session_id: str) -> Optional[FocusSession]:
        with self._lock:
            record = copy.deepcopy(self._sessions.get(session_id))
        return FocusSession.from_dict(record) if record else None
    
    def list_sessions(self, user_id: str) -> List[FocusSession]:
        with self._lock:
            records = [copy.deepcopy(r) for r in self._sessions.values() if r.get("user_id") == user_id]
        
        sessions = [FocusSession.from_dict(r) for r in records]
        return sorted(sessions, key=lambda s: s.start_time)
    
    def list_completed_session_dates(self, user_id: str) -> List[date]:
        days = {day_key(s.start_time) for s in self.list_sessions(user_id) if s.is_completed}
        return sorted(days)
