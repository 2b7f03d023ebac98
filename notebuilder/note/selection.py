from __future__ import annotations

"""
Track which option texts are checked in each section.

Design intent:
- Preserve toggle order per section; catalog order is irrelevant here.
- Stay total: unknown section ids simply start a new list.
"""

from typing import Dict, List


class SelectionStore:
    def __init__(self) -> None:
        self._selections: Dict[str, List[str]] = {}

    def toggle(self, section_id: str, option_text: str) -> bool:
        current = self._selections.get(section_id, [])
        if option_text in current:
            self._selections[section_id] = [item for item in current if item != option_text]
            return False
        self._selections[section_id] = [*current, option_text]
        return True

    def section_selections(self, section_id: str) -> List[str]:
        return list(self._selections.get(section_id, []))

    def is_selected(self, section_id: str, option_text: str) -> bool:
        return option_text in self._selections.get(section_id, [])

    def count(self, section_id: str) -> int:
        return len(self._selections.get(section_id, []))

    def reset(self) -> None:
        self._selections = {}

    def as_dict(self) -> Dict[str, List[str]]:
        return {section_id: list(items) for section_id, items in self._selections.items()}
