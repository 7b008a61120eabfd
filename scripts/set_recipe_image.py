"""
Replace a recipe's primary image.

The new URL becomes ``image`` and the first entry of ``images``.
"""

import argparse
import logging
import sys
from pathlib import Path

from bson import ObjectId

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import database


logger = logging.getLogger(__name__)


def set_recipe_image(db, recipe_id: str, image_url: str) -> bool:
    recipe = db["recipe"].find_one({"_id": ObjectId(recipe_id)}, {"images": 1})
    if not recipe:
        return False
    images = list(recipe.get("images") or [])
    if images:
        images[0] = image_url
    else:
        images = [image_url]
    db["recipe"].update_one(
        {"_id": recipe["_id"]},
        {"$set": {"image": image_url, "images": images, "updated_at": database.utcnow()}},
    )
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("recipe_id")
    parser.add_argument("image_url")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--database-name", default=None, help="Overrides DATABASE_NAME")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    if not ObjectId.is_valid(args.recipe_id):
        logger.error("Invalid recipe id: %s", args.recipe_id)
        return 1
    db = database.connect(args.database_url, args.database_name)
    if db is None:
        logger.error("No database configured")
        return 1
    try:
        if not set_recipe_image(db, args.recipe_id, args.image_url):
            logger.error("Recipe not found with ID: %s", args.recipe_id)
            return 1
    finally:
        database.close()

    logger.info("Recipe %s image set to %s", args.recipe_id, args.image_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
