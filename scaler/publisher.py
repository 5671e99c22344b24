"""
DerivativePublisher - Stores derivatives back into the media store.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import PublishError
from .object_reference import ObjectReference
from .scaler_config import DEFAULT_CACHE_CONTROL, DEFAULT_TAGGING
from .thumbnail_generator import DerivedObject


@dataclass(frozen=True)
class PublishResult:
    bucket: str
    key: str
    etag: Optional[str] = None

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class DerivativePublisher:
    """
    Writes a derivative to media/<id>/<size>.

    Objects are public-read, carry a Cache-Control directive and are tagged
    so that bucket lifecycle rules can expire them.
    """

    def __init__(
        self,
        client,
        cache_control: str = DEFAULT_CACHE_CONTROL,
        tagging: str = DEFAULT_TAGGING,
        acl: str = 'public-read',
        logger: Optional[logging.Logger] = None
    ):
        self.client = client
        self.cache_control = cache_control
        self.tagging = tagging
        self.acl = acl
        self.logger = logger or logging.getLogger(__name__)

    def publish(
        self,
        bucket: str,
        ref: ObjectReference,
        derived: DerivedObject
    ) -> PublishResult:
        """
        Store derived under the derived key of ref.

        Raises:
            PublishError: The store rejected the write
        """
        key = ref.derived_key
        self.logger.debug(f"Putting object into S3: s3://{bucket}/{key}")

        try:
            etag = self.client.upload_object(
                bucket,
                key,
                derived.data,
                content_type=derived.content_type,
                acl=self.acl,
                cache_control=self.cache_control,
                tagging=self.tagging,
            )
        except ClientError as e:
            message = e.response.get('Error', {}).get('Message') or str(e)
            self.logger.error(f"S3 put error for {key}: {message}")
            raise PublishError("Failed to place output object in media store", message) from e
        except BotoCoreError as e:
            self.logger.error(f"S3 put error for {key}: {e}")
            raise PublishError("Failed to place output object in media store", str(e)) from e

        self.logger.info(f"Published {key} ({len(derived.data)} bytes)")
        return PublishResult(bucket=bucket, key=key, etag=etag)
