from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas
from ..services import search as search_service

router = APIRouter(prefix="/api/search", tags=["search"])


def _to_result(hit: search_service.SearchHit) -> schemas.SearchResultOut:
    base = schemas.FileOut.model_validate(hit.file)
    return schemas.SearchResultOut(**base.model_dump(), section=hit.section)


@router.get("", response_model=schemas.SearchResponse)
async def search_files_route(
    q: str = Query("", description="Case-insensitive file name fragment"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    results = search_service.search_files(db, q, user.id)
    return schemas.SearchResponse(
        query=results.query,
        own_results=[_to_result(hit) for hit in results.own],
        shared_results=[_to_result(hit) for hit in results.shared],
        total_results=results.total,
    )
