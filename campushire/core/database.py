from typing import Optional

from beanie import init_beanie
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from campushire.core.config import settings
from campushire.models.mongodb_models import DOCUMENT_MODELS, User, UserRole


class DatabaseManager:
    """Holds the Motor client and the Beanie-initialised database"""

    def __init__(self):
        self.client = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._initialized = False

    async def connect(self, client=None, db_name: Optional[str] = None) -> AsyncIOMotorDatabase:
        self.client = client or AsyncIOMotorClient(settings.MONGODB_URL)
        self.database = self.client[db_name or settings.MONGODB_DB_NAME]
        await init_beanie(database=self.database, document_models=DOCUMENT_MODELS)
        self._initialized = True
        logger.info(f"Beanie initialised on database '{self.database.name}'")
        return self.database

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self.database = None
        self._initialized = False


db_manager = DatabaseManager()


async def init_database(client=None, db_name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """Connect to MongoDB and register every document model with Beanie"""
    try:
        return await db_manager.connect(client=client, db_name=db_name)
    except Exception as e:
        logger.error(f"Error initializing MongoDB: {e}")
        raise


async def close_database() -> None:
    db_manager.close()
    logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    """Get MongoDB database for FastAPI dependency injection"""
    if not db_manager._initialized:
        logger.error("Database manager not initialized")
        raise RuntimeError("Database manager not initialized")
    return db_manager.database


async def create_default_data() -> None:
    """Seed the default admin account"""
    try:
        from campushire.core.security import get_password_hash

        existing_admin = await User.find_one({"role": UserRole.ADMIN.value})
        if existing_admin:
            logger.info("Admin user already exists")
            return

        admin = User(
            name="Admin User",
            email=settings.DEFAULT_ADMIN_EMAIL,
            password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            is_verified=True,
        )
        admin.profile.department = "Administration"
        admin.profile.batch = "Admin"
        await admin.insert()
        logger.info(f"Default admin user created: {admin.email}")
    except Exception as e:
        logger.error(f"Error creating default data: {e}")


async def health_check() -> bool:
    """Check MongoDB health"""
    try:
        await User.find_one()
        return True
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return False
