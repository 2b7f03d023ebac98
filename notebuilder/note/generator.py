from __future__ import annotations

"""
Join selected option texts into a single copy-ready note line.

Design intent:
- Keep generation a pure function of work type, selections and case ID.
- Reproduce separator trimming exactly, including empty segments.
"""

import re
from typing import Mapping, Optional, Sequence

from notebuilder.internal_core.contracts import NoteOption, NoteSection, WorkType

NOTE_SEPARATOR = " | "
CASE_ID_PLACEHOLDER = "*"
# ECMAScript whitespace: what `\s` and `String.prototype.trim` cover in the browser.
_WHITESPACE = (
    "\t\n\v\f\r \xa0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)
_WS_CLASS = "[" + re.escape(_WHITESPACE) + "]"
_TRAILING_SEPARATOR_RE = re.compile(_WS_CLASS + r"*\|" + _WS_CLASS + r"*\Z")


def clean_selection_text(text: str, case_id: str = "") -> str:
    replaced = text.replace(CASE_ID_PLACEHOLDER, case_id) if case_id else text
    return _TRAILING_SEPARATOR_RE.sub("", replaced, count=1).strip(_WHITESPACE)


def generate_notes(
    work_type: Optional[WorkType],
    selections: Mapping[str, Sequence[str]],
    case_id: str = "",
) -> str:
    if work_type is None:
        return ""

    all_selections: list[str] = []
    for section in work_type.sections:
        all_selections.extend(selections.get(section.id) or [])

    if not all_selections:
        return ""

    # Empty segments stay in the join, e.g. "A |  | B".
    return NOTE_SEPARATOR.join(clean_selection_text(text, case_id) for text in all_selections)


def group_options_by_category(
    section: NoteSection,
) -> tuple[dict[str, list[NoteOption]], list[NoteOption]]:
    categorized: dict[str, list[NoteOption]] = {}
    uncategorized: list[NoteOption] = []
    for option in section.options:
        if option.category:
            categorized.setdefault(option.category, []).append(option)
        else:
            uncategorized.append(option)
    return categorized, uncategorized
