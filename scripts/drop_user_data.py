"""Drop all time records for a specific user.

Usage:
    python scripts/drop_user_data.py --mongodb-url mongodb://localhost:27017 <user_id>
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.database import GuardedStore, MongoKeyValueStore
from app.logging_config import setup_logging
from app.services.record_service import RecordService


logger = logging.getLogger("drop_user_data")


async def drop_user_data(mongodb_url: str, db_name: str, collection: str, user_id: str) -> int:
    """Delete every item in the user's partition, active timer included."""
    client = AsyncIOMotorClient(mongodb_url)
    try:
        store = GuardedStore(MongoKeyValueStore(client[db_name][collection]))
        return await RecordService(store).purge_user(user_id)
    finally:
        client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete all time records for one user")
    parser.add_argument("user_id")
    parser.add_argument("--mongodb-url", default=settings.mongodb_url)
    parser.add_argument("--db-name", default=settings.mongodb_db_name)
    parser.add_argument("--collection", default=settings.records_collection)
    args = parser.parse_args()

    setup_logging(settings.log_level, settings.log_format)
    deleted = asyncio.run(
        drop_user_data(args.mongodb_url, args.db_name, args.collection, args.user_id)
    )
    logger.info("Deleted %s items for user %s", deleted, args.user_id)


if __name__ == "__main__":
    main()
