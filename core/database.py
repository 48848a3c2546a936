from __future__ import annotations

from pymongo import AsyncMongoClient

from core.settings import load_settings

_settings = load_settings()

mongo_client: AsyncMongoClient = AsyncMongoClient(
    _settings.mongo_url,
    serverSelectionTimeoutMS=2000,
    connect=False,
)
db = mongo_client[_settings.db_name]
