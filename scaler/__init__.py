"""
On-demand image scaling for an S3 media bucket.

A request for <id>/<size> fetches media/<id>, scales raster images to the
requested height as JPEG (SVG passes through), stores the result at
media/<id>/<size> and returns it.
"""

__version__ = "1.0.0"

from .errors import (
    ScalerError, BadRequest, FetchError, ObjectNotFound, ObjectTooLarge,
    ScaleError, PublishError, ConfigError)
from .scaler_config import ScalerConfig
from .object_reference import ObjectReference, parse
from .s3_client import S3Client, StoredObject
from .fetcher import OriginFetcher, OriginObject
from .thumbnail_generator import ThumbnailGenerator, DerivedObject, ImageClass, classify
from .publisher import DerivativePublisher, PublishResult
from .response import ResponseEnvelope
from .diagnostics import Diagnostics
from .handler import ScaleHandler, ScalerContext, create_context

__all__ = [
    "ScalerError",
    "BadRequest",
    "FetchError",
    "ObjectNotFound",
    "ObjectTooLarge",
    "ScaleError",
    "PublishError",
    "ConfigError",
    "ScalerConfig",
    "ObjectReference",
    "parse",
    "S3Client",
    "StoredObject",
    "OriginFetcher",
    "OriginObject",
    "ThumbnailGenerator",
    "DerivedObject",
    "ImageClass",
    "classify",
    "DerivativePublisher",
    "PublishResult",
    "ResponseEnvelope",
    "Diagnostics",
    "ScaleHandler",
    "ScalerContext",
    "create_context",
]
