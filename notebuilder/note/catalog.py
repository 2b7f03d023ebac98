from __future__ import annotations

"""
Load the static work type catalog that feeds the note builder.

Design intent:
- Keep option text as plain JSON files so reviewers can edit wording directly.
- Validate every file into typed models once, then serve a read-only view.
- Fail loudly on duplicate ids rather than silently shadowing entries.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from notebuilder.internal_core.config import load_config
from notebuilder.internal_core.contracts import WorkType

logger = logging.getLogger(__name__)


def catalog_root(catalog_dir: Optional[Path] = None) -> Path:
    if catalog_dir is not None:
        return Path(catalog_dir)
    return load_config().catalog_dir_path()


def list_work_types(catalog_dir: Optional[Path] = None) -> list[WorkType]:
    return list(_load_catalog(str(catalog_root(catalog_dir))))


def get_work_type(work_type_id: str, catalog_dir: Optional[Path] = None) -> Optional[WorkType]:
    normalized = str(work_type_id or "").strip()
    for work_type in list_work_types(catalog_dir):
        if work_type.id == normalized:
            return work_type
    return None


def require_work_type(work_type_id: str, catalog_dir: Optional[Path] = None) -> WorkType:
    work_type = get_work_type(work_type_id, catalog_dir)
    if work_type is None:
        raise ValueError(f"Unknown work_type_id: {work_type_id!r}")
    return work_type


def clear_catalog_cache() -> None:
    _load_catalog.cache_clear()


@lru_cache(maxsize=8)
def _load_catalog(root_dir: str) -> tuple[WorkType, ...]:
    root = Path(root_dir)
    if not root.exists():
        raise ValueError(f"Catalog directory not found: {root}")
    if not root.is_dir():
        raise ValueError(f"Catalog path is not a directory: {root}")

    work_types: list[WorkType] = []
    seen: set[str] = set()
    for path in sorted(root.glob("*.json")):
        work_type = _load_work_type_file(path)
        if work_type.id in seen:
            raise ValueError(f"Duplicate work_type id '{work_type.id}' in {path}")
        seen.add(work_type.id)
        work_types.append(work_type)

    logger.info("Loaded %d work types from %s", len(work_types), root)
    return tuple(work_types)


def _load_work_type_file(path: Path) -> WorkType:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid catalog JSON in {path}: {exc}") from exc
    try:
        return WorkType.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid catalog entry in {path}: {exc}") from exc
