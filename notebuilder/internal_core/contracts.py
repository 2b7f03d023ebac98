from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

EditState = Literal["viewing", "editing"]


class NoteOption(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    category: Optional[str] = None


class NoteSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    title: str
    options: List[NoteOption] = Field(default_factory=list)

    def has_option(self, text: str) -> bool:
        return any(option.text == text for option in self.options)


class WorkType(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str
    sections: List[NoteSection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_sections(self) -> "WorkType":
        seen: set[str] = set()
        for section in self.sections:
            if section.id in seen:
                raise ValueError(f"Duplicate section id '{section.id}' in work type '{self.id}'")
            seen.add(section.id)
        return self

    def find_section(self, section_id: str) -> Optional[NoteSection]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


AuditEventType = Literal[
    "SESSION_CREATED",
    "WORK_TYPE_SELECTED",
    "SECTION_SELECTED",
    "OPTION_TOGGLED",
    "CASE_ID_SET",
    "CASE_ID_REJECTED",
    "EDIT_STARTED",
    "EDIT_SAVED",
    "EDIT_CANCELLED",
    "RESET",
    "COPIED",
    "COPY_FAILED",
    "SESSION_DESTROYED",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    session_id: str
    type: AuditEventType
    code: str
    detail: str
