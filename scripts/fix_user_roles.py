"""
Backfill the default role on user records that have none.

Accounts created before roles existed may have no ``role`` field, or a null
or empty one. This sets them to ``user``. Safe to run repeatedly.
"""

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import database
from admin import MISSING_ROLE


logger = logging.getLogger(__name__)


def fix_user_roles(db, dry_run: bool = False) -> tuple:
    """Return (users found, users updated)."""
    query = {"$or": MISSING_ROLE}
    found = db["user"].count_documents(query)
    logger.info("Found %d users without role", found)
    if dry_run or not found:
        return found, 0
    result = db["user"].update_many(query, {"$set": {"role": "user"}})
    return found, result.modified_count


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--database-name", default=None, help="Overrides DATABASE_NAME")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many users would be updated without saving",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    db = database.connect(args.database_url, args.database_name)
    if db is None:
        logger.error("No database configured")
        return 1
    try:
        found, updated = fix_user_roles(db, dry_run=args.dry_run)
    finally:
        database.close()

    logger.info("User roles fixed: %d found, %d updated", found, updated)
    return 0


if __name__ == "__main__":
    sys.exit(main())
