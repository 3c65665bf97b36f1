from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models

# purpose: partition file-name matches into the caller's own files and files shared by others
# status: pilot

Section = Literal["own", "shared"]


@dataclass(frozen=True)
class SearchHit:
    file: models.File
    section: Section


@dataclass
class SearchResults:
    query: str
    own: list[SearchHit] = field(default_factory=list)
    shared: list[SearchHit] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.own) + len(self.shared)


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_files(db: Session, query: str, requester_id: UUID) -> SearchResults:
    """Case-insensitive substring search over file names.

    ``own`` holds the requester's files, ``shared`` holds other users' shared
    files. Both are ordered newest first, ties broken by id.
    """

    term = (query or "").strip()
    if not term:
        return SearchResults(query=term)

    pattern = _like_pattern(term.casefold())
    name_matches = models.File.search_name.like(pattern, escape="\\")
    ordering = (models.File.created_at.desc(), models.File.id.asc())

    own = (
        db.query(models.File)
        .filter(models.File.owner_id == requester_id, name_matches)
        .order_by(*ordering)
        .all()
    )
    shared = (
        db.query(models.File)
        .filter(
            models.File.owner_id != requester_id,
            models.File.shared.is_(True),
            name_matches,
        )
        .order_by(*ordering)
        .all()
    )
    return SearchResults(
        query=term,
        own=[SearchHit(file=f, section="own") for f in own],
        shared=[SearchHit(file=f, section="shared") for f in shared],
    )
