"""AI function endpoints: metadata generation and search-by-image.

Failures are answered as ``{"error": ...}`` bodies rather than FastAPI's
``detail`` so browser clients read one error shape.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from analysis.metadata import MetadataGenerator
from database import get_db
from dependencies import get_metadata_generator, get_similarity_search
from errors import InvalidRequestError
from schemas import (
    ImageSearchRequest,
    PhotoMetadataRequest,
    VideoMetadataRequest,
    media_to_dict,
)
from search.similarity import ImageSimilaritySearch, SimilarityResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def similarity_response(result: SimilarityResult) -> JSONResponse:
    payload = {
        "results": [media_to_dict(r) for r in result.results],
        "description": result.description,
    }
    if result.message:
        payload["message"] = result.message
    return JSONResponse(payload)


async def read_body(request: Request, model: type[BaseModel]) -> BaseModel:
    try:
        return model.model_validate(await request.json())
    except ValueError as e:
        raise InvalidRequestError(f"Invalid request body: {e}") from e


async def _generate(request: Request, model, field: str, media_type: str,
                    generator: MetadataGenerator) -> JSONResponse:
    try:
        try:
            body = await read_body(request, model)
        except InvalidRequestError as e:
            result = generator.fallback_or_raise(media_type, e)
        else:
            result = await generator.analyze(getattr(body, field), media_type)
    except Exception as e:
        logger.error(f"Error in generate-{media_type}-metadata: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", 500)
    return JSONResponse(result.to_response())


@router.post("/generate-photo-metadata")
async def generate_photo_metadata(
    request: Request,
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Structured description/tags/faces/setting for one photo URL."""
    return await _generate(request, PhotoMetadataRequest, "imageUrl", "photo", generator)


@router.post("/generate-video-metadata")
async def generate_video_metadata(
    request: Request,
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Structured description/tags/setting for one video URL."""
    return await _generate(request, VideoMetadataRequest, "videoUrl", "video", generator)


@router.post("/search-by-image")
async def search_by_image(
    request: Request,
    db: Session = Depends(get_db),
    searcher: ImageSimilaritySearch = Depends(get_similarity_search),
):
    """Describe a base64 image and return up to six stored photos ranked by similarity."""
    try:
        body = await read_body(request, ImageSearchRequest)
        if not body.imageBase64:
            return error_response("Image data is required", 400)
        result = await searcher.search(body.imageBase64, db)
    except Exception as e:
        logger.error(f"Error in search-by-image: {e}", exc_info=True)
        return error_response(str(e) or "Unknown error", 500)
    return similarity_response(result)
