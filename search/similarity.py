"""Image-similarity search: describe an uploaded image, then let the model rank stored photos."""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ai_gateway import AIGateway, text_content, user_message
from config import Settings
from models import MediaRecord
from search.ranking import (
    IMAGE_ANALYSIS_PROMPT,
    build_ranking_prompt,
    parse_ranked_ids,
    select_ranked,
)

logger = logging.getLogger(__name__)

EMPTY_STORE_MESSAGE = "Nenhuma foto encontrada no banco de dados ainda."


@dataclass
class SimilarityResult:
    results: list = field(default_factory=list)
    description: str = ""
    message: Optional[str] = None


def load_candidates(db: Session) -> list[MediaRecord]:
    """Every stored record, newest upload first.

    This is a full-table read; it is sent to the model in one prompt, so it
    only scales to small galleries.
    """
    return db.query(MediaRecord).order_by(MediaRecord.uploaded_at.desc()).all()


class ImageSimilaritySearch:
    """Two sequential model calls: free-text description, then ID ranking."""

    def __init__(self, gateway: AIGateway, config: Settings):
        self.gateway = gateway
        self.limit = config.SEARCH_RESULT_LIMIT

    async def describe_image(self, image_data_url: str) -> str:
        response = await self.gateway.chat([user_message(IMAGE_ANALYSIS_PROMPT, image_data_url)])
        description = text_content(response)
        logger.info(f"Image description: {description[:500]}")
        return description

    async def rank(self, image_description: str, candidates: list[MediaRecord]) -> list[MediaRecord]:
        prompt = build_ranking_prompt(image_description, candidates, self.limit)
        response = await self.gateway.chat([user_message(prompt)])
        ranked_text = text_content(response)
        logger.info(f"AI ranking response: {ranked_text}")
        return select_ranked(parse_ranked_ids(ranked_text), candidates, self.limit)

    async def search(self, image_data_url: str, db: Session) -> SimilarityResult:
        image_description = await self.describe_image(image_data_url)

        candidates = load_candidates(db)
        logger.info(f"Found {len(candidates)} photos in database")

        if not candidates:
            return SimilarityResult(
                results=[], description=image_description, message=EMPTY_STORE_MESSAGE
            )

        ranked = await self.rank(image_description, candidates)
        logger.info(f"Returning {len(ranked)} ranked photos")
        return SimilarityResult(results=ranked, description=image_description)
