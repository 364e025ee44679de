#!/usr/bin/env python3
"""
Knowledge Base Index Setup

Creates the MongoDB indexes (including the weighted text index used by
keyword search) and lists the indexes of every collection.
Run: python scripts/setup_text_index.py
"""
import logging
import sys

from karirkit.core.logging_config import configure_logging
from karirkit.db.mongodb import COLLECTIONS, get_collection, init_mongo_indexes, test_mongo_connection
from karirkit.services.mongo_service import KBVectorService

logger = logging.getLogger("setup_text_index")


def main() -> int:
    configure_logging()

    if not test_mongo_connection():
        logger.error("Cannot reach MongoDB, check MONGODB_URI")
        return 1

    init_mongo_indexes()

    for name in COLLECTIONS.values():
        logger.info("Indexes on %s:", name)
        for index in get_collection(name).list_indexes():
            keys = ", ".join(f"{field}:{kind}" for field, kind in index["key"].items())
            weights = index.get("weights")
            suffix = f" weights={dict(weights)}" if weights else ""
            logger.info("  %s (%s)%s", index["name"], keys, suffix)

    logger.info("%s holds %d chunks", COLLECTIONS["kb_vectors"], KBVectorService().count())
    return 0


if __name__ == "__main__":
    sys.exit(main())
