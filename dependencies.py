"""FastAPI dependencies for the AI-backed services and object storage."""
from fastapi import Depends

from ai_gateway import AIGateway
from analysis.metadata import MetadataGenerator
from config import Settings, settings
from minio_client import get_minio_client
from search.similarity import ImageSimilaritySearch


def get_settings() -> Settings:
    return settings


def get_gateway(config: Settings = Depends(get_settings)) -> AIGateway:
    return AIGateway(config)


def get_metadata_generator(
    gateway: AIGateway = Depends(get_gateway),
    config: Settings = Depends(get_settings),
) -> MetadataGenerator:
    return MetadataGenerator(gateway, config)


def get_similarity_search(
    gateway: AIGateway = Depends(get_gateway),
    config: Settings = Depends(get_settings),
) -> ImageSimilaritySearch:
    return ImageSimilaritySearch(gateway, config)


def get_storage_client():
    return get_minio_client()
