"""Beanie initialization for ODM."""

from beanie import init_beanie
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from app.schemas.catalog import MediaServer, Playlist, UserPlatform
from app.schemas.relay_session import RelaySession
from app.schemas.stream import Stream
from app.schemas.transmission import Transmission
from app.schemas.transmission_platform import TransmissionPlatform
from app.utils.app_errors import ValidationError

DOCUMENT_MODELS = [
    Transmission,
    Stream,
    TransmissionPlatform,
    RelaySession,
    UserPlatform,
    Playlist,
    MediaServer,
]


async def init_beanie_odm(
    mongo_client: AsyncMongoClient | AsyncDatabase,
    database_name: str | None = None,
) -> None:
    """
    Initialize Beanie ODM with all document models.

    Also creates the declared indexes, including the partial unique index
    that allows one in-flight transmission per owner.

    Args:
        mongo_client: Async client or database instance
        database_name: Database name (only needed if passing client)
    """
    if isinstance(mongo_client, AsyncMongoClient):
        if not database_name:
            raise ValidationError("database_name required when passing AsyncMongoClient")
        database = mongo_client[database_name]
    else:
        database = mongo_client

    await init_beanie(
        database=database,
        document_models=DOCUMENT_MODELS,
    )


__all__ = ["DOCUMENT_MODELS", "init_beanie_odm"]
