from __future__ import annotations

"""
Per-page note builder state: selections, case ID, edit overlay, copy flag.

Design intent:
- Derive generated notes on read from current selections; never cache them.
- Let a saved manual edit mask live output until reset or an empty save.
- Keep the transient "copied" indicator on a cancellable timer.
"""

import re
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from notebuilder.internal_core.contracts import EditState, NoteSection, WorkType
from notebuilder.note.catalog import require_work_type
from notebuilder.note.generator import generate_notes, group_options_by_category
from notebuilder.note.selection import SelectionStore

ClipboardWriter = Callable[[str], bool]

_CASE_ID_RE = re.compile(r"[0-9]+")


def is_valid_case_id(value: str) -> bool:
    return value == "" or _CASE_ID_RE.fullmatch(value) is not None


class EditOverlay:
    def __init__(self) -> None:
        self._state: EditState = "viewing"
        self._content = ""

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def content(self) -> str:
        return self._content

    @property
    def is_editing(self) -> bool:
        return self._state == "editing"

    def begin_edit(self, generated: str) -> bool:
        if self.is_editing:
            return False
        if not self._content:
            self._content = generated
        self._state = "editing"
        return True

    def update(self, text: str) -> bool:
        if not self.is_editing:
            return False
        self._content = text
        return True

    def save(self) -> bool:
        if not self.is_editing:
            return False
        self._state = "viewing"
        return True

    def cancel(self) -> bool:
        if not self.is_editing:
            return False
        self._state = "viewing"
        self._content = ""
        return True

    def reset(self) -> None:
        self._state = "viewing"
        self._content = ""

    def displayed(self, generated: str) -> str:
        return self._content or generated


class CopiedIndicator:
    """Flag that turns itself off ``reset_after_sec`` seconds after being set."""

    def __init__(self, reset_after_sec: float = 2.0) -> None:
        self._reset_after_sec = max(0.0, float(reset_after_sec))
        self._lock = threading.Lock()
        self._copied = False
        self._timer: Optional[threading.Timer] = None

    @property
    def copied(self) -> bool:
        with self._lock:
            return self._copied

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._copied = True
            timer = threading.Timer(self._reset_after_sec, self._expire)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._copied = False

    def _expire(self) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                # Superseded by a newer copy, or cancelled.
                return
            self._copied = False
            self._timer = None


class NoteBuilderSession:
    def __init__(
        self,
        *,
        work_type_id: str,
        copied_reset_sec: float = 2.0,
        catalog_dir: Optional[Path] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._catalog_dir = catalog_dir
        self._work_type: WorkType = require_work_type(work_type_id, catalog_dir)
        self._section_id = ""
        self._case_id = ""
        self.selections = SelectionStore()
        self.overlay = EditOverlay()
        self.copied = CopiedIndicator(copied_reset_sec)

    @property
    def work_type(self) -> WorkType:
        return self._work_type

    @property
    def section_id(self) -> str:
        return self._section_id

    @property
    def current_section(self) -> Optional[NoteSection]:
        if not self._section_id:
            return None
        return self._work_type.find_section(self._section_id)

    @property
    def case_id(self) -> str:
        return self._case_id

    def select_work_type(self, work_type_id: str) -> WorkType:
        work_type = require_work_type(work_type_id, self._catalog_dir)
        with self._lock:
            self._work_type = work_type
        return work_type

    def select_section(self, section_id: str) -> Optional[NoteSection]:
        normalized = str(section_id or "").strip()
        with self._lock:
            if not normalized:
                self._section_id = ""
                return None
            section = self._work_type.find_section(normalized)
            if section is None:
                raise ValueError(
                    f"Unknown section_id {normalized!r} for work type {self._work_type.id!r}"
                )
            self._section_id = section.id
            return section

    def toggle_option(self, section_id: str, option_text: str) -> bool:
        with self._lock:
            section = self._work_type.find_section(section_id)
            if section is None:
                raise ValueError(
                    f"Unknown section_id {section_id!r} for work type {self._work_type.id!r}"
                )
            if not section.has_option(option_text):
                raise ValueError(f"Unknown option for section {section_id!r}: {option_text!r}")
            return self.selections.toggle(section_id, option_text)

    def set_case_id(self, raw: str) -> bool:
        if not is_valid_case_id(raw):
            return False
        with self._lock:
            self._case_id = raw
        return True

    def generated_notes(self) -> str:
        with self._lock:
            return generate_notes(self._work_type, self.selections.as_dict(), self._case_id)

    def displayed_notes(self) -> str:
        with self._lock:
            return self.overlay.displayed(self.generated_notes())

    @property
    def can_edit(self) -> bool:
        return bool(self.generated_notes())

    @property
    def can_copy(self) -> bool:
        return bool(self.displayed_notes())

    def begin_edit(self) -> bool:
        with self._lock:
            return self.overlay.begin_edit(self.generated_notes())

    def update_edit(self, text: str) -> bool:
        with self._lock:
            return self.overlay.update(text)

    def save_edit(self) -> bool:
        with self._lock:
            return self.overlay.save()

    def cancel_edit(self) -> bool:
        with self._lock:
            return self.overlay.cancel()

    def reset(self) -> None:
        with self._lock:
            self.selections.reset()
            self._case_id = ""
            self._section_id = ""
            self.overlay.reset()

    def copy(self, writer: ClipboardWriter) -> bool:
        text = self.displayed_notes()
        if not text:
            return False
        if not writer(text):
            return False
        self.copied.trigger()
        return True

    def close(self) -> None:
        self.copied.cancel()

    def section_counts(self) -> dict[str, int]:
        with self._lock:
            return {
                section.id: self.selections.count(section.id)
                for section in self._work_type.sections
            }

    def section_view(self) -> Optional[dict[str, Any]]:
        section = self.current_section
        if section is None:
            return None
        categorized, uncategorized = group_options_by_category(section)
        def _rows(options) -> list[dict[str, Any]]:
            return [
                {"text": option.text, "checked": self.selections.is_selected(section.id, option.text)}
                for option in options
            ]

        return {
            "id": section.id,
            "title": section.title,
            "uncategorized": _rows(uncategorized),
            "categories": [
                {"category": category, "options": _rows(options)}
                for category, options in categorized.items()
            ],
        }

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            generated = self.generated_notes()
            displayed = self.overlay.displayed(generated)
            return {
                "work_type_id": self._work_type.id,
                "section_id": self._section_id,
                "selections": self.selections.as_dict(),
                "section_counts": self.section_counts(),
                "case_id": self._case_id,
                "edit_state": self.overlay.state,
                "overlay_text": self.overlay.content,
                "generated_notes": generated,
                "displayed_notes": displayed,
                "can_edit": bool(generated),
                "can_copy": bool(displayed),
                "copied": self.copied.copied,
                "section": self.section_view(),
            }
