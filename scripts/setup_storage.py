#!/usr/bin/env python3
"""
Create the public image buckets. Run once per Supabase project.

Needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (the service role key, not
the anon key), either in the environment or in a .env file.

    python scripts/setup_storage.py
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from sidebuilds.libs.storage_client import BUCKETS, StorageClient, StorageError

logger = logging.getLogger("setup_storage")


async def setup_storage() -> int:
    client = StorageClient()
    for bucket in BUCKETS.values():
        try:
            created = await client.create_bucket(bucket)
        except StorageError as e:
            logger.error(f"Error creating {bucket.name}: {e.message}")
            return 1
        if created:
            logger.info(f"Created {bucket.name} bucket")
        else:
            logger.info(f"{bucket.name} bucket already exists")
    logger.info("Storage setup complete")
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    sys.exit(asyncio.run(setup_storage()))
