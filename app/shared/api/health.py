from fastapi import APIRouter
from loguru import logger
from pymongo.errors import PyMongoError

from ..config import config
from ..storage.mongo import get_mongo_client
from .utils import ApiSuccess


router = APIRouter()


async def ping_database() -> bool:
    label = (config.get('MONGO_LABEL') or 'broadcast').strip()
    try:
        await get_mongo_client(label).admin.command('ping')
    except (PyMongoError, ValueError) as e:
        logger.warning('Database ping failed for label {}: {}', label, e)
        return False
    return True


@router.get('/health', response_model=ApiSuccess)
async def health():
    database_up = await ping_database()
    return ApiSuccess(results={'service': 'OK', 'database': 'up' if database_up else 'down'})
