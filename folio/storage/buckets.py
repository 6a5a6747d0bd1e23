import logging
from typing import List

from folio.storage.client import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUCKETS = (
    "gallery-images",
    "slideshow-images",
    "logos",
    "custom-fonts",
    "fotos",
    "custom-sections",
)


def ensure_default_buckets(storage: ObjectStorage) -> List[str]:
    """Create any missing default bucket with a public-read policy. Returns the ones created."""
    created = []
    for bucket in DEFAULT_BUCKETS:
        try:
            if storage.bucket_exists(bucket):
                continue
            storage.create_bucket(bucket, public=True)
            created.append(bucket)
            logger.info("Created bucket: %s", bucket)
        except StorageError as e:
            logger.error("Could not ensure bucket %s: %s", bucket, e)
    return created
