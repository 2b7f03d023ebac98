from __future__ import annotations

import time
import uuid
from threading import RLock
from typing import TYPE_CHECKING, Any, Dict, List

from .contracts import AuditEvent

if TYPE_CHECKING:
    from notebuilder.note.builder import NoteBuilderSession


class InMemorySessionStore:
    def __init__(self, ttl_seconds: int):
        self._ttl_seconds = ttl_seconds
        self._lock = RLock()
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def create_session(self, builder: "NoteBuilderSession") -> str:
        session_id = uuid.uuid4().hex
        now = time.time()
        with self._lock:
            self._sessions[session_id] = {
                "session_id": session_id,
                "created_at": now,
                "updated_at": now,
                "expires_at": now + self._ttl_seconds,
                "builder": builder,
                "audit_events": [],
            }
        return session_id

    def _touch(self, session_id: str) -> None:
        now = time.time()
        session = self._sessions[session_id]
        session["updated_at"] = now
        session["expires_at"] = now + self._ttl_seconds

    def _require(self, session_id: str) -> Dict[str, Any]:
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session_id: {session_id}")
        if session["expires_at"] <= time.time():
            self.destroy_session(session_id, reason="ttl_expired")
            raise KeyError(f"Expired session_id: {session_id}")
        return session

    def get_builder(self, session_id: str) -> "NoteBuilderSession":
        with self._lock:
            session = self._require(session_id)
            self._touch(session_id)
            return session["builder"]

    def append_audit_event(self, session_id: str, event: AuditEvent) -> None:
        with self._lock:
            self._require(session_id)["audit_events"].append(event)
            self._touch(session_id)

    def list_audit_events(self, session_id: str) -> List[AuditEvent]:
        with self._lock:
            return list(self._require(session_id)["audit_events"])

    def destroy_session(self, session_id: str, reason: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session["builder"].close()
        return True

    def cleanup_expired_sessions(self) -> int:
        now = time.time()
        expired = []
        with self._lock:
            for session_id, session in self._sessions.items():
                if session["expires_at"] <= now:
                    expired.append(session_id)
        for session_id in expired:
            self.destroy_session(session_id, reason="ttl_expired")
        return len(expired)
