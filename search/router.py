"""FastAPI router for gallery search endpoints."""
import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_similarity_search
from functions import error_response, similarity_response
from models import MediaRecord
from schemas import media_to_dict
from search.keyword import filter_media
from search.similarity import ImageSimilaritySearch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


def to_data_url(image_bytes: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{content_type or 'image/jpeg'};base64,{encoded}"


@router.get("")
async def keyword_search(
    q: str = Query("", description="Text matched against descriptions and tags"),
    event_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Filter stored media by a case-insensitive substring."""
    query = db.query(MediaRecord)
    if event_id:
        query = query.filter(MediaRecord.event_id == event_id).order_by(MediaRecord.order_index.asc())
    else:
        query = query.order_by(MediaRecord.uploaded_at.desc())

    results = filter_media(query.all(), q)
    logger.info(f"keyword q={q!r} event={event_id}: {len(results)} results")
    return {
        "query": q,
        "mode": "keyword",
        "results": [media_to_dict(r) for r in results],
    }


@router.post("/image")
async def image_search(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    searcher: ImageSimilaritySearch = Depends(get_similarity_search),
):
    """Multipart variant of search-by-image."""
    try:
        image_bytes = await image.read()
        if not image_bytes:
            return error_response("Image data is required", 400)
        result = await searcher.search(to_data_url(image_bytes, image.content_type), db)
    except Exception as e:
        logger.error(f"Error in image search: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", 500)
    return similarity_response(result)
