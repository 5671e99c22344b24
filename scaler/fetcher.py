"""
OriginFetcher - Retrieves original objects from the media store.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import FetchError, ObjectNotFound, ObjectTooLarge
from .object_reference import ObjectReference
from .scaler_config import DEFAULT_MAX_ORIGIN_BYTES


NOT_FOUND_CODES = {'NoSuchKey', 'NotFound', '404'}


@dataclass(frozen=True)
class OriginObject:
    """
    The original image as fetched from the store.

    Attributes:
        data: Full payload
        content_type: Content-Type declared by the store
        content_length: Payload size in bytes
    """
    data: bytes
    content_type: str
    content_length: int


class OriginFetcher:
    """Fetches media/<id> for an ObjectReference."""

    def __init__(
        self,
        client,
        max_bytes: int = DEFAULT_MAX_ORIGIN_BYTES,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize fetcher.

        Args:
            client: Storage client providing download_object()
            max_bytes: Upper bound on the size of an original
            logger: Optional logger instance
        """
        self.client = client
        self.max_bytes = max_bytes
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, bucket: str, ref: ObjectReference) -> OriginObject:
        """
        Fetch the original object for ref.

        Raises:
            ObjectNotFound: The store has no such object
            FetchError: Any other store or transport failure, or the object
                exceeds max_bytes
        """
        key = ref.origin_key
        self.logger.debug(f"Getting object from S3: s3://{bucket}/{key}")

        try:
            stored = self.client.download_object(bucket, key, max_bytes=self.max_bytes)
        except ObjectTooLarge as e:
            self.logger.warning(f"Rejecting {key}: {e}")
            raise
        except ClientError as e:
            error = e.response.get('Error', {})
            message = error.get('Message') or str(e)
            if str(error.get('Code')) in NOT_FOUND_CODES:
                self.logger.info(f"Original not found: {key}")
                raise ObjectNotFound("Original object not found", message) from e
            self.logger.error(f"Get request error for {key}: {message}")
            raise FetchError("Failed to retrieve object from media store", message) from e
        except BotoCoreError as e:
            self.logger.error(f"Get request error for {key}: {e}")
            raise FetchError("Failed to retrieve object from media store", str(e)) from e

        return OriginObject(
            data=stored.body,
            content_type=stored.content_type,
            content_length=stored.content_length,
        )
