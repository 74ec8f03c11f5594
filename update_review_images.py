"""Point every review's restaurant image and photos at the default review image."""
import logging
import sys

import database
from errors import AppError
from seed import DEFAULT_REVIEW_IMAGE

logger = logging.getLogger(__name__)


@database.backend_call("Error updating review images")
def update_review_images(image: str = DEFAULT_REVIEW_IMAGE) -> int:
    reviews = database.get_documents(database.REVIEWS)
    for review in reviews:
        database.update_document(database.REVIEWS, review["id"], {
            "restaurantImage": image,
            "images": [image],
        })
        logger.info("Updated images for review: %s", review["id"])
    return len(reviews)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        count = update_review_images()
    except AppError as e:
        logger.error("Error updating review images: %s", e.message)
        sys.exit(1)
    logger.info("Updated %d review(s)", count)


if __name__ == "__main__":
    main()
