from __future__ import annotations

import datetime as _dt
import logging

from .contracts import AuditEvent, AuditEventType
from .session_store import InMemorySessionStore

logger = logging.getLogger(__name__)


def _ts_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _sanitize_detail(detail: str) -> str:
    # IMPORTANT: Never include note text or case IDs in detail.
    detail = (detail or "").replace("\n", " ").strip()
    if len(detail) > 200:
        detail = detail[:200] + "…"
    return detail


def log_event(
    store: InMemorySessionStore,
    session_id: str,
    event_type: AuditEventType,
    code: str,
    detail: str = "",
) -> AuditEvent:
    event = AuditEvent(
        ts_iso=_ts_iso(),
        session_id=session_id,
        type=event_type,
        code=code,
        detail=_sanitize_detail(detail),
    )
    store.append_audit_event(session_id, event)
    logger.debug("audit session=%s type=%s code=%s", session_id, event_type, code)
    return event
