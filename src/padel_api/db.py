# src/padel_api/db.py

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from padel_api.core.config import settings, logger

mongo_client = None

async def init_db_connections():
    """Connects to MongoDB and registers the Beanie documents (creating their indexes)."""
    global mongo_client

    logger.info("--- [DB-INIT] Initializing MongoDB connection... ---")

    try:
        from padel_api.models.user import User, PadelMatch

        mongo_client = AsyncIOMotorClient(settings.MONGO_DB_URL)

        await init_beanie(
            database=mongo_client[settings.MONGO_DB_NAME],
            document_models=[User, PadelMatch]
        )

        await mongo_client.server_info()
        logger.info(f"--- [DB-INIT] MongoDB & Beanie initialized successfully for DB '{settings.MONGO_DB_NAME}'. ---")

    except Exception as e:
        logger.error(f"--- [DB-INIT-ERROR] Failed during MongoDB/Beanie initialization: {e} ---", exc_info=True)
        mongo_client = None # Ensure client is None on failure


async def close_db_connections():
    """Closes the MongoDB connection."""
    if mongo_client:
        mongo_client.close()
        logger.info("MongoDB connection closed.")
