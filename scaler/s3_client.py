"""
S3Client - S3/MinIO operations for fetching originals and storing derivatives.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

from .errors import ObjectTooLarge
from .scaler_config import ScalerConfig


@dataclass(frozen=True)
class StoredObject:
    """
    An object read from the store.

    Attributes:
        body: Full payload
        content_type: Content-Type reported by the store
        content_length: Payload size in bytes
    """
    body: bytes
    content_type: str
    content_length: int


class S3Client:
    """
    Thin wrapper around a boto3 S3 client.

    Every call is a single attempt bounded by the configured timeouts.
    botocore exceptions propagate to the caller.
    """

    def __init__(self, config: ScalerConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: Scaler configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        s3_options = {'addressing_style': 'path'} if config.endpoint else {}
        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3=s3_options,
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                retries={'total_max_attempts': 1, 'mode': 'standard'},
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def download_object(
        self,
        bucket: str,
        key: str,
        max_bytes: Optional[int] = None
    ) -> StoredObject:
        """
        Download an object in full.

        Args:
            bucket: Bucket name
            key: Object key
            max_bytes: Reject objects larger than this many bytes

        Raises:
            ObjectTooLarge: The object exceeds max_bytes
        """
        response = self._client.get_object(Bucket=bucket, Key=key)
        body = response['Body']
        try:
            reported = response.get('ContentLength')
            if max_bytes is not None and reported is not None and reported > max_bytes:
                raise ObjectTooLarge(max_bytes, reported)

            if max_bytes is None:
                data = body.read()
            else:
                # One byte over the cap is enough to detect an oversized body
                data = body.read(max_bytes + 1)
                if len(data) > max_bytes:
                    raise ObjectTooLarge(max_bytes, reported)
        finally:
            body.close()

        return StoredObject(
            body=data,
            content_type=response.get('ContentType', 'application/octet-stream'),
            content_length=len(data),
        )

    def upload_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream',
        acl: Optional[str] = None,
        cache_control: Optional[str] = None,
        tagging: Optional[str] = None
    ) -> Optional[str]:
        """
        Upload an object.

        Returns:
            The ETag reported by the store, if any
        """
        params = {
            'Bucket': bucket,
            'Key': key,
            'Body': data,
            'ContentType': content_type,
            'ContentLength': len(data),
        }
        if acl:
            params['ACL'] = acl
        if cache_control:
            params['CacheControl'] = cache_control
        if tagging:
            params['Tagging'] = tagging

        response = self._client.put_object(**params)
        return response.get('ETag') if isinstance(response, dict) else None
