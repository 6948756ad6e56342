"""Storage interface for focus sessions."""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from tracking.session import FocusSession


class StorageError(Exception):
    """Raised when a session store cannot read or write."""


class SessionStore(Protocol):
    """
    Protocol defining the interface for session persistence.
    
    Field dictionaries use the keys of FocusSession.to_dict(). All methods
    raise StorageError on failure.
    """
    
    def create_session(self, fields: Dict[str, Any]) -> str:
        """Persist a new session and return its id."""
        ...
    
    def update_session(self, session_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing session."""
        ...
    
    def append_distraction(self, session_id: str, event: Dict[str, Any]) -> None:
        """Append a distraction event to a session's log."""
        ...
    
    def list_completed_session_dates(self, user_id: str) -> List[date]:
        """Distinct local dates on which the user completed a session."""
        ...
    
    def list_sessions(self, user_id: str) -> List[FocusSession]:
        """All sessions for a user, oldest first."""
        ...
    
    def get_session(self, session_id: str) -> Optional[FocusSession]:
        """A single session, or None if it does not exist."""
        ...
