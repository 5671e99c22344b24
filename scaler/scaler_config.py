"""
ScalerConfig - Process-level configuration for the scaling service.

Loaded once at startup and treated as read-only afterwards.
"""

import logging
import os
from dataclasses import dataclass, asdict
from typing import List, Optional

from .errors import ConfigError


DEFAULT_MIN_SIZE = 20
DEFAULT_MAX_SIZE = 2560
DEFAULT_MAX_ORIGIN_BYTES = 25 * 1024 * 1024  # 25 MiB
DEFAULT_CACHE_CONTROL = 'max-age=64800'
DEFAULT_TAGGING = 'temp'


def env_flag(name: str) -> bool:
    """
    Return True if the environment variable is set to anything other than
    an empty string, "false" or "0" (case-insensitive).
    """
    value = os.getenv(name, '').strip().lower()
    if not value:
        return False
    return value not in ('false', '0')


def str2bool(value, default: bool = False) -> bool:
    """Convert common truthy/falsy strings into a boolean."""
    true_set = {'yes', 'true', 't', 'y', '1', 'on'}
    false_set = {'no', 'false', 'f', 'n', '0', 'off'}

    if isinstance(value, str):
        value = value.strip().lower()
        if value in true_set:
            return True
        if value in false_set:
            return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer", f"got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number", f"got {raw!r}")


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class ScalerConfig:
    """
    Configuration for the scaler.

    Attributes:
        bucket: Media bucket holding originals and derivatives
        region: Store region (None lets boto3 decide)
        endpoint: Custom S3-compatible endpoint (None for AWS)
        access_key: Access key (None uses the boto3 credential chain)
        secret_key: Secret key
        verify_ssl: Verify TLS certificates of the endpoint
        min_size: Smallest accepted requested size
        max_size: Largest accepted requested size
        max_origin_bytes: Upper bound on the size of an original object
        jpeg_quality: JPEG quality used for raster derivatives
        cache_control: Cache-Control stored with each derivative
        tagging: Object tagging marking derivatives as temporary
        connect_timeout: Store connect timeout in seconds
        read_timeout: Store read timeout in seconds
        debug_output: Return diagnostics (status 222) instead of payloads
        build: Build identifier reported in diagnostics
        log_level: Logging level name
    """
    bucket: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    verify_ssl: bool = True
    min_size: int = DEFAULT_MIN_SIZE
    max_size: int = DEFAULT_MAX_SIZE
    max_origin_bytes: int = DEFAULT_MAX_ORIGIN_BYTES
    jpeg_quality: int = 85
    cache_control: str = DEFAULT_CACHE_CONTROL
    tagging: str = DEFAULT_TAGGING
    connect_timeout: float = 5.0
    read_timeout: float = 20.0
    debug_output: bool = False
    build: str = 'dev'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'ScalerConfig':
        """Build configuration from environment variables."""
        from . import __version__

        return cls(
            bucket=_first_env('MEDIA_BUCKET', 'S3_BUCKET'),
            region=_first_env('AWS_REGION', 'S3_REGION'),
            endpoint=os.getenv('S3_ENDPOINT') or None,
            access_key=os.getenv('S3_ACCESS_KEY') or None,
            secret_key=os.getenv('S3_SECRET_KEY') or None,
            verify_ssl=str2bool(os.getenv('S3_VERIFY_SSL'), default=True),
            min_size=_env_int('SCALER_MIN_SIZE', DEFAULT_MIN_SIZE),
            max_size=_env_int('SCALER_MAX_SIZE', DEFAULT_MAX_SIZE),
            max_origin_bytes=_env_int('SCALER_MAX_ORIGIN_BYTES', DEFAULT_MAX_ORIGIN_BYTES),
            jpeg_quality=_env_int('SCALER_JPEG_QUALITY', 85),
            cache_control=os.getenv('SCALER_CACHE_CONTROL', DEFAULT_CACHE_CONTROL),
            tagging=os.getenv('SCALER_TAGGING', DEFAULT_TAGGING),
            connect_timeout=_env_float('SCALER_CONNECT_TIMEOUT', 5.0),
            read_timeout=_env_float('SCALER_READ_TIMEOUT', 20.0),
            debug_output=env_flag('DEBUG_OUTPUT'),
            build=os.getenv('SCALER_BUILD') or __version__,
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    def validate(self) -> List[str]:
        """
        Check the configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.bucket:
            errors.append("MEDIA_BUCKET is not set")
        if self.min_size < 1:
            errors.append(f"Minimum size must be positive (got {self.min_size})")
        if self.max_size < self.min_size:
            errors.append(
                f"Maximum size {self.max_size} is below minimum size {self.min_size}"
            )
        if self.max_origin_bytes <= 0:
            errors.append("Input buffer cap must be positive")
        if not 1 <= self.jpeg_quality <= 95:
            errors.append(f"JPEG quality must be in 1..95 (got {self.jpeg_quality})")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            errors.append("Store timeouts must be positive")
        if bool(self.access_key) != bool(self.secret_key):
            errors.append("S3_ACCESS_KEY and S3_SECRET_KEY must be set together")
        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")
        return errors

    def require_valid(self) -> 'ScalerConfig':
        """Return self, or raise ConfigError listing every problem."""
        errors = self.validate()
        if errors:
            raise ConfigError("Invalid configuration", '; '.join(errors))
        return self

    def to_dict(self, redact: bool = True) -> dict:
        """Dictionary form, with the secret key masked unless redact is False."""
        data = asdict(self)
        if redact and data.get('secret_key'):
            data['secret_key'] = '***'
        return data
