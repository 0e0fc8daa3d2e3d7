# flashquiz/db/database.py

from motor.motor_asyncio import AsyncIOMotorClient

from flashquiz.core.config import settings

# Клиент не подключается до первого запроса, поэтому импорт безопасен без MongoDB
client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=False)

db = client[settings.MONGO_DB_NAME]


# dependency для FastAPI
async def get_database():
    return db
