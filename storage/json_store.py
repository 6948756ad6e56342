"""Session store keeping one JSON file per session."""

import json
import logging
import os
import threading
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import config
from storage.base import StorageError
from tracking.session import FocusSession
from tracking.streaks import day_key

logger = logging.getLogger(__name__)


class JsonSessionStore:
    """
    File-backed session store.
    
    Each session lives in `<data_dir>/<session_id>.json`. Writes go to a
    temporary file first and are moved into place, so a crash never
    leaves a half-written session behind.
    """
    
    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the store.
        
        Args:
            data_dir: Directory for session files (defaults to config.DATA_DIR)
        """
        self.data_dir = Path(data_dir or config.DATA_DIR)
        self._lock = threading.Lock()
    
    def _path(self, session_id: str) -> Path:
        return self.data_dir / f"{session_id}.json"
    
    def _read(self, session_id: str) -> Dict[str, Any]:
        path = self._path(session_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise StorageError(f"Session {session_id} not found") from e
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read session {session_id}: {e}") from e
    
    def _write(self, session_id: str, record: Dict[str, Any]) -> None:
        path = self._path(session_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Could not write session {session_id}: {e}") from e
    
    def create_session(self, fields: Dict[str, Any]) -> str:
        session_id = uuid.uuid4().hex
        record = dict(fields)
        record["id"] = session_id
        record.setdefault("distractions", [])
        
        with self._lock:
            self._write(session_id, record)
        
        logger.info(f"Created session file {self._path(session_id).name}")
        return session_id
    
    def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._read(session_id)
            record.update(fields)
            self._write(session_id, record)
    
    def append_distraction(self, session_id: str, event: Dict[str, Any]) -> None:
        with self._lock:
            record = self._read(session_id)
            record.setdefault("distractions", []).append(dict(event))
            self._write(session_id, record)
    
    def get_session(self, session_id: str) -> Optional[FocusSession]:
        if not self._path(session_id).exists():
            return None
        with self._lock:
            record = self._read(session_id)
        return FocusSession.from_dict(record)
    
    def list_sessions(self, user_id: str) -> List[FocusSession]:
        if not self.data_dir.exists():
            return []
        
        sessions = []
        with self._lock:
            for path in sorted(self.data_dir.glob("*.json")):
                try:
                    record = self._read(path.stem)
                    session = FocusSession.from_dict(record)
                except (StorageError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping unreadable session file {path.name}: {e}")
                    continue
                
                if session.user_id == user_id:
                    sessions.append(session)
        
        return sorted(sessions, key=lambda s: s.start_time)
    
    def list_completed_session_dates(self, user_id: str) -> List[date]:
        days = {day_key(s.start_time) for s in self.list_sessions(user_id) if s.is_completed}
        return sorted(days)
