from loguru import logger
from pymongo.errors import ConfigurationError

from app.app_config import get_app_environ_config
from app.shared.storage.mongo import get_mongo_client
from app.schemas.init import init_beanie_odm

DEFAULT_DATABASE_NAME = "broadcast"


async def init_schema():
    label = get_app_environ_config().MONGO_LABEL
    mongo_client = get_mongo_client(label)
    try:
        db = mongo_client.get_default_database()
    except ConfigurationError:
        # Connection string carries no database path
        logger.info(f"No database in MONGO_URL_{label.upper()}, using '{DEFAULT_DATABASE_NAME}'")
        db = mongo_client[DEFAULT_DATABASE_NAME]
    await init_beanie_odm(db)


if __name__ == "__main__":
    import asyncio

    asyncio.run(init_schema())
