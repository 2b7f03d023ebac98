from __future__ import annotations

"""
HTTP surface for the note builder.

Design intent:
- Keep API orchestration thin and typed.
- Delegate selection, generation and edit state to the note modules.
- Render the builder page once; every later action is a small JSON call.
"""

import logging
from pathlib import Path
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from notebuilder.internal_core import BuilderConfig, InMemorySessionStore, load_config
from notebuilder.internal_core.audit import log_event
from notebuilder.internal_core.contracts import AuditEvent, WorkType
from notebuilder.note.builder import ClipboardWriter, NoteBuilderSession
from notebuilder.note.catalog import list_work_types


class OptionView(BaseModel):
    text: str
    checked: bool = False


class CategoryView(BaseModel):
    category: str
    options: list[OptionView] = Field(default_factory=list)


class SectionView(BaseModel):
    id: str
    title: str
    uncategorized: list[OptionView] = Field(default_factory=list)
    categories: list[CategoryView] = Field(default_factory=list)


class BuilderStateResponse(BaseModel):
    session_id: str
    work_type_id: str
    section_id: str = ""
    selections: dict[str, list[str]] = Field(default_factory=dict)
    section_counts: dict[str, int] = Field(default_factory=dict)
    case_id: str = ""
    edit_state: Literal["viewing", "editing"] = "viewing"
    overlay_text: str = ""
    generated_notes: str = ""
    displayed_notes: str = ""
    can_edit: bool = False
    can_copy: bool = False
    copied: bool = False
    section: SectionView | None = None
    debug: dict[str, Any] = Field(default_factory=dict)


class CaseIdResponse(BuilderStateResponse):
    accepted: bool


class CopyResponse(BuilderStateResponse):
    copied_ok: bool


class CatalogResponse(BaseModel):
    work_types: list[WorkType] = Field(default_factory=list)
    debug: dict[str, Any] = Field(default_factory=dict)


class AuditTrailResponse(BaseModel):
    session_id: str
    events: list[AuditEvent] = Field(default_factory=list)


class SessionCreateRequest(BaseModel):
    work_type_id: str | None = Field(default=None, max_length=128)


class WorkTypeSelectRequest(BaseModel):
    work_type_id: str = Field(min_length=1, max_length=128)


class SectionSelectRequest(BaseModel):
    section_id: str = Field(default="", max_length=128)


class OptionToggleRequest(BaseModel):
    section_id: str = Field(min_length=1, max_length=128)
    option_text: str = Field(max_length=4000)


class CaseIdRequest(BaseModel):
    case_id: str = Field(default="", max_length=64)


class EditUpdateRequest(BaseModel):
    text: str = Field(default="", max_length=20000)


class CopyRequest(BaseModel):
    client_copied: bool = False


app = FastAPI(title="note builder service")
logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "web" / "templates"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

BREADCRUMBS = [
    {"title": "Notes", "href": "/notes/builder"},
    {"title": "Builder", "href": "/notes/builder"},
]


def _get_config() -> BuilderConfig:
    existing = getattr(app.state, "builder_config", None)
    if isinstance(existing, BuilderConfig):
        return existing
    created = load_config()
    logging.getLogger("notebuilder").setLevel(created.NOTEBUILDER_LOG_LEVEL)
    setattr(app.state, "builder_config", created)
    return created


def _get_session_store() -> InMemorySessionStore:
    existing = getattr(app.state, "builder_sessions", None)
    if isinstance(existing, InMemorySessionStore):
        return existing
    created = InMemorySessionStore(ttl_seconds=_get_config().NOTEBUILDER_SESSION_TTL_SECONDS)
    setattr(app.state, "builder_sessions", created)
    return created


def _get_builder(session_id: str) -> NoteBuilderSession:
    normalized = str(session_id or "").strip()
    if not normalized:
        raise HTTPException(status_code=400, detail="session_id is required.")
    try:
        return _get_session_store().get_builder(normalized)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Builder session not found: {normalized}") from exc


def _resolve_clipboard_writer(client_copied: bool) -> ClipboardWriter:
    writer = getattr(app.state, "clipboard_writer", None)
    if callable(writer):
        return writer
    # The browser wrote to its own clipboard and reports the outcome.
    return lambda _text: bool(client_copied)


def _serialize_state(session_id: str, builder: NoteBuilderSession, **extra: Any) -> dict[str, Any]:
    snapshot = builder.snapshot()
    return {
        "session_id": session_id,
        **snapshot,
        "debug": {
            "work_type_name": builder.work_type.name,
            "section_count": len(builder.work_type.sections),
            "selected_count": sum(snapshot["section_counts"].values()),
        },
        **extra,
    }


def _state_response(session_id: str, builder: NoteBuilderSession) -> BuilderStateResponse:
    return BuilderStateResponse.model_validate(_serialize_state(session_id, builder))


def _load_catalog_or_500() -> list[WorkType]:
    try:
        return list_work_types(_get_config().catalog_dir_path())
    except ValueError as exc:
        logger.error("Note catalog failed to load: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/notes/builder", response_class=HTMLResponse)
async def notes_builder_page(request: Request, session_id: str | None = Query(default=None)):
    work_types = _load_catalog_or_500()
    initial_state = None
    if session_id:
        initial_state = _serialize_state(session_id, _get_builder(session_id))
    return templates.TemplateResponse(
        request,
        "notes/builder.html",
        {
            "breadcrumbs": BREADCRUMBS,
            "work_types": work_types,
            "catalog": [item.model_dump() for item in work_types],
            "default_work_type_id": _get_config().NOTEBUILDER_DEFAULT_WORK_TYPE,
            "initial_state": initial_state,
        },
    )


@app.get("/notes/catalog", response_model=CatalogResponse)
async def notes_catalog() -> CatalogResponse:
    work_types = _load_catalog_or_500()
    return CatalogResponse(
        work_types=work_types,
        debug={"work_type_count": len(work_types)},
    )


@app.post("/notes/builder/sessions", response_model=BuilderStateResponse)
async def builder_session_create(payload: SessionCreateRequest | None = None) -> BuilderStateResponse:
    config = _get_config()
    store = _get_session_store()
    expired = store.cleanup_expired_sessions()
    if expired:
        logger.info("Expired %d idle builder sessions", expired)

    work_type_id = (payload.work_type_id if payload else None) or config.NOTEBUILDER_DEFAULT_WORK_TYPE
    try:
        builder = NoteBuilderSession(
            work_type_id=work_type_id,
            copied_reset_sec=config.NOTEBUILDER_COPIED_RESET_SECONDS,
            catalog_dir=config.catalog_dir_path(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    session_id = store.create_session(builder)
    log_event(store, session_id, "SESSION_CREATED", "OK", f"work_type={builder.work_type.id}")
    return _state_response(session_id, builder)


@app.get("/notes/builder/sessions/{session_id}", response_model=BuilderStateResponse)
async def builder_session_state(session_id: str) -> BuilderStateResponse:
    return _state_response(session_id, _get_builder(session_id))


@app.delete("/notes/builder/sessions/{session_id}")
async def builder_session_delete(session_id: str) -> dict[str, Any]:
    store = _get_session_store()
    _get_builder(session_id)
    log_event(store, session_id, "SESSION_DESTROYED", "OK", "reason=client_request")
    store.destroy_session(session_id, reason="client_request")
    return {"session_id": session_id, "deleted": True}


@app.get("/notes/builder/sessions/{session_id}/audit", response_model=AuditTrailResponse)
async def builder_session_audit(session_id: str) -> AuditTrailResponse:
    _get_builder(session_id)
    return AuditTrailResponse(
        session_id=session_id,
        events=_get_session_store().list_audit_events(session_id),
    )


@app.put("/notes/builder/sessions/{session_id}/work-type", response_model=BuilderStateResponse)
async def builder_select_work_type(session_id: str, payload: WorkTypeSelectRequest) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    try:
        work_type = builder.select_work_type(payload.work_type_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    log_event(_get_session_store(), session_id, "WORK_TYPE_SELECTED", "OK", f"work_type={work_type.id}")
    return _state_response(session_id, builder)


@app.put("/notes/builder/sessions/{session_id}/section", response_model=BuilderStateResponse)
async def builder_select_section(session_id: str, payload: SectionSelectRequest) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    try:
        section = builder.select_section(payload.section_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    log_event(
        _get_session_store(),
        session_id,
        "SECTION_SELECTED",
        "OK" if section is not None else "CLEARED",
        f"section={section.id if section is not None else ''}",
    )
    return _state_response(session_id, builder)


@app.post("/notes/builder/sessions/{session_id}/toggle", response_model=BuilderStateResponse)
async def builder_toggle_option(session_id: str, payload: OptionToggleRequest) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    try:
        selected = builder.toggle_option(payload.section_id, payload.option_text)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    log_event(
        _get_session_store(),
        session_id,
        "OPTION_TOGGLED",
        "SELECTED" if selected else "DESELECTED",
        f"section={payload.section_id} count={builder.selections.count(payload.section_id)}",
    )
    return _state_response(session_id, builder)


@app.put("/notes/builder/sessions/{session_id}/case-id", response_model=CaseIdResponse)
async def builder_set_case_id(session_id: str, payload: CaseIdRequest) -> CaseIdResponse:
    builder = _get_builder(session_id)
    accepted = builder.set_case_id(payload.case_id)
    log_event(
        _get_session_store(),
        session_id,
        "CASE_ID_SET" if accepted else "CASE_ID_REJECTED",
        "OK" if accepted else "NON_NUMERIC",
        f"length={len(payload.case_id)}",
    )
    return CaseIdResponse.model_validate(_serialize_state(session_id, builder, accepted=accepted))


@app.post("/notes/builder/sessions/{session_id}/edit/begin", response_model=BuilderStateResponse)
async def builder_begin_edit(session_id: str) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    if builder.begin_edit():
        log_event(_get_session_store(), session_id, "EDIT_STARTED", "OK")
    return _state_response(session_id, builder)


@app.put("/notes/builder/sessions/{session_id}/edit", response_model=BuilderStateResponse)
async def builder_update_edit(session_id: str, payload: EditUpdateRequest) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    if not builder.update_edit(payload.text):
        raise HTTPException(status_code=409, detail="Builder session is not in editing state.")
    return _state_response(session_id, builder)


@app.post("/notes/builder/sessions/{session_id}/edit/save", response_model=BuilderStateResponse)
async def builder_save_edit(session_id: str) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    if builder.save_edit():
        log_event(
            _get_session_store(),
            session_id,
            "EDIT_SAVED",
            "OVERLAY" if builder.overlay.content else "EMPTY",
        )
    return _state_response(session_id, builder)


@app.post("/notes/builder/sessions/{session_id}/edit/cancel", response_model=BuilderStateResponse)
async def builder_cancel_edit(session_id: str) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    if builder.cancel_edit():
        log_event(_get_session_store(), session_id, "EDIT_CANCELLED", "OK")
    return _state_response(session_id, builder)


@app.post("/notes/builder/sessions/{session_id}/reset", response_model=BuilderStateResponse)
async def builder_reset(session_id: str) -> BuilderStateResponse:
    builder = _get_builder(session_id)
    builder.reset()
    log_event(_get_session_store(), session_id, "RESET", "OK")
    return _state_response(session_id, builder)


@app.post("/notes/builder/sessions/{session_id}/copy", response_model=CopyResponse)
async def builder_copy(session_id: str, payload: CopyRequest | None = None) -> CopyResponse:
    builder = _get_builder(session_id)
    writer = _resolve_clipboard_writer(bool(payload.client_copied) if payload else False)
    try:
        copied_ok = builder.copy(writer)
    except Exception as exc:
        logger.warning("Clipboard writer failed for session %s: %s", session_id, exc)
        copied_ok = False
    log_event(
        _get_session_store(),
        session_id,
        "COPIED" if copied_ok else "COPY_FAILED",
        "OK" if copied_ok else ("EMPTY" if not builder.can_copy else "WRITER_REJECTED"),
    )
    return CopyResponse.model_validate(_serialize_state(session_id, builder, copied_ok=copied_ok))
