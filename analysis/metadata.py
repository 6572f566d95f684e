"""Metadata generation: structured description/tags for one photo or video."""
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

from ai_gateway import (
    AIGateway,
    forced_tool_choice,
    function_tool,
    tool_arguments,
    user_message,
)
from config import Settings
from errors import GalleryError, InvalidRequestError, MalformedResponseError

logger = logging.getLogger(__name__)

PHOTO_PROMPT = "Analise esta foto de batismo e forneça informações detalhadas."

VIDEO_PROMPT = (
    "Analise este vídeo de batizado e forneça uma descrição detalhada e tags "
    "relevantes. Foque em elementos visuais, ambiente, pessoas e momentos importantes."
)

PHOTO_TOOL = function_tool(
    "analyze_baptism_photo",
    "Análise detalhada de foto de batismo",
    {
        "type": "object",
        "properties": {
            "description": {
                "type": "string",
                "description": (
                    "Descrição detalhada da foto em português, incluindo pessoas, "
                    "ambiente, emoções e momento capturado"
                ),
            },
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Array de palavras-chave relevantes em português "
                    "(ex: batismo, igreja, família, bebê, padre, água benta)"
                ),
            },
            "faces_count": {
                "type": "integer",
                "description": "Número estimado de rostos visíveis na foto",
            },
            "setting": {
                "type": "string",
                "description": (
                    "Tipo de ambiente (ex: igreja, salão de festas, ao ar livre, residência)"
                ),
            },
        },
        "required": ["description", "tags", "faces_count", "setting"],
        "additionalProperties": False,
    },
)

VIDEO_TOOL = function_tool(
    "analyze_video",
    "Analyze a baptism video and return structured metadata",
    {
        "type": "object",
        "properties": {
            "description": {"type": "string", "description": "Detailed description in Portuguese"},
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Relevant tags in Portuguese",
            },
            "setting": {
                "type": "string",
                "description": "Location type (church, home, outdoor, etc)",
            },
        },
        "required": ["description", "tags"],
    },
)

# Returned instead of an error when the fallback policy is on for a kind
FALLBACKS = {
    "photo": {"description": "Foto de batizado", "tags": ["batizado", "foto"], "setting": "church"},
    "video": {"description": "Vídeo de batizado", "tags": ["batizado", "vídeo"], "setting": "church"},
}


@dataclass
class AnalysisResult:
    description: str
    tags: list[str] = field(default_factory=list)
    faces_count: Optional[int] = None
    setting: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error: Optional[str] = None  # set only on fallback results

    @property
    def is_fallback(self) -> bool:
        return self.error is not None

    def to_response(self) -> dict:
        """Wire form: omit empty optional fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def _result_from_arguments(arguments: dict) -> AnalysisResult:
    """Keep the schema fields only; a wrong type counts as a malformed response."""
    description = arguments.get("description")
    if not isinstance(description, str):
        raise MalformedResponseError("Structured analysis is missing 'description'")
    tags = arguments.get("tags") or []
    if not isinstance(tags, list):
        raise MalformedResponseError("Structured analysis 'tags' is not a list")
    return AnalysisResult(
        description=description,
        tags=[str(t) for t in tags],
        faces_count=arguments.get("faces_count"),
        setting=arguments.get("setting"),
    )


class MetadataGenerator:
    """Ask the vision model for a structured analysis of one media item.

    Failures either propagate or become a fixed fallback result, chosen per
    media kind by PHOTO_METADATA_FALLBACK / VIDEO_METADATA_FALLBACK.
    """

    def __init__(self, gateway: AIGateway, config: Settings):
        self.gateway = gateway
        self.fallback_enabled = {
            "photo": config.PHOTO_METADATA_FALLBACK,
            "video": config.VIDEO_METADATA_FALLBACK,
        }

    async def analyze(self, media_url: str, media_type: str) -> AnalysisResult:
        if media_type == "video":
            return await self.analyze_video(media_url)
        return await self.analyze_photo(media_url)

    async def analyze_photo(self, image_url: str) -> AnalysisResult:
        try:
            if not image_url:
                raise InvalidRequestError("imageUrl é obrigatório")
            logger.info(f"Analyzing photo: {image_url}")
            arguments = await self._structured_call(PHOTO_PROMPT, image_url, PHOTO_TOOL)
            return _result_from_arguments(arguments)
        except GalleryError as e:
            return self.fallback_or_raise("photo", e)

    async def analyze_video(self, video_url: str) -> AnalysisResult:
        try:
            if not video_url:
                raise InvalidRequestError("videoUrl is required")
            logger.info(f"Analyzing video: {video_url}")
            arguments = await self._structured_call(VIDEO_PROMPT, video_url, VIDEO_TOOL)
            result = _result_from_arguments(arguments)
        except GalleryError as e:
            return self.fallback_or_raise("video", e)

        # No separate thumbnail is rendered for videos
        result.faces_count = None
        result.thumbnail_url = video_url
        return result

    async def _structured_call(self, prompt: str, media_url: str, tool: dict) -> dict:
        response = await self.gateway.chat(
            [user_message(prompt, media_url)],
            tools=[tool],
            tool_choice=forced_tool_choice(tool["function"]["name"]),
        )
        arguments = tool_arguments(response)
        logger.info(f"Generated metadata: {arguments}")
        return arguments

    def fallback_or_raise(self, media_type: str, error: Exception) -> AnalysisResult:
        """Re-raise ``error`` or turn it into the fixed fallback result for this kind."""
        if not self.fallback_enabled[media_type]:
            logger.error(f"{media_type} metadata generation failed: {error}")
            raise error
        logger.warning(f"{media_type} metadata generation failed, using fallback: {error}")
        fallback = FALLBACKS[media_type]
        return AnalysisResult(
            description=fallback["description"],
            tags=list(fallback["tags"]),
            setting=fallback["setting"],
            error=str(error),
        )
