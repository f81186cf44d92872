"""Setup MongoDB indexes for the identity store.

Creates the indexes the identity core relies on, plus the ``user_id``
indexes used by cascading account deletion.

Collections:
- identities: unique email, single superadmin (partial unique on role)
- subscription_history: user_id + timestamp
- sessions: identity_id
- system_settings: default settings (inserted if absent)
- meals / favorites: user_id

Usage:
    python scripts/setup_mongodb_indexes.py

Environment Variables:
    MONGODB_URI: MongoDB connection string (required)
    MONGODB_DATABASE: Database name (default: mealtracker)
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from domain.identity.core.exceptions.identity_errors import ConnectivityError
from infrastructure.config import get_mongodb_database, get_mongodb_uri
from infrastructure.logging_config import configure_logging
from infrastructure.persistence.mongodb.identity_store import (
    DEPENDENT_COLLECTIONS,
    HISTORY_COLLECTION,
    SESSIONS_COLLECTION,
    MongoIdentityStore,
)

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
    logging.debug(f"Loaded environment from: {env_path}")

configure_logging()
logger = logging.getLogger(__name__)


async def create_dependent_indexes(db: AsyncIOMotorDatabase[Dict[str, Any]]) -> None:
    """Index ``user_id`` on collections deleted with their owner."""
    for name in DEPENDENT_COLLECTIONS:
        logger.info(f"Creating indexes for '{name}' collection...")
        await db[name].create_index([("user_id", 1)], name="idx_user", background=True)
        logger.info("  ✓ Created index: user_id")


async def list_existing_indexes(db: AsyncIOMotorDatabase[Dict[str, Any]]) -> None:
    """List all existing indexes for verification."""
    logger.info("=" * 60)
    logger.info("Existing Indexes Summary")
    logger.info("=" * 60)

    collections = ["identities", HISTORY_COLLECTION, SESSIONS_COLLECTION, *DEPENDENT_COLLECTIONS]

    for coll_name in collections:
        indexes = await db[coll_name].list_indexes().to_list(length=None)

        logger.info(f"{coll_name}:")
        for idx in indexes:
            name = idx.get("name", "unknown")
            keys = idx.get("key", {})
            unique = " (unique)" if idx.get("unique", False) else ""
            partial = " (partial)" if "partialFilterExpression" in idx else ""
            keys_str = ", ".join(f"{k}:{v}" for k, v in keys.items())
            logger.info(f"  • {name}: [{keys_str}]{unique}{partial}")


async def setup_all_indexes() -> None:
    """Create identity and dependent-collection indexes."""
    uri = get_mongodb_uri()
    if not uri:
        logger.error("MONGODB_URI not configured!")
        logger.error("Set MONGODB_URI environment variable with connection string.")
        sys.exit(1)

    database_name = get_mongodb_database()
    logger.info(f"Connecting to MongoDB: {database_name}")

    client: AsyncIOMotorClient[Dict[str, Any]] = AsyncIOMotorClient(uri)
    store = MongoIdentityStore(client=client)
    db = client[database_name]

    try:
        await store.ping()
        logger.info("✓ Connected to MongoDB successfully")

        await store.initialize()
        logger.info("  ✓ Identity indexes and default settings in place")
        await create_dependent_indexes(db)

        logger.info("✅ All indexes created successfully!")

        await list_existing_indexes(db)

    except ConnectivityError as e:
        logger.error(f"❌ Error setting up indexes: {e}")
        sys.exit(1)

    finally:
        await store.close()


def main() -> None:
    """Main entry point."""
    logger.info("=" * 60)
    logger.info("MongoDB Index Setup for the identity store")
    logger.info("=" * 60)

    try:
        asyncio.run(setup_all_indexes())
    except KeyboardInterrupt:
        logger.info("⚠️  Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
