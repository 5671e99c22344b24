"""
Pytest fixtures for scaler tests.
"""

import io
import logging

import pytest
from unittest.mock import MagicMock


SVG_BYTES = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10">'
    b'<rect width="10" height="10" fill="red"/></svg>'
)


def make_image_bytes(size, mode='RGB', color='red', image_format='PNG'):
    """Encode a solid-color image."""
    from PIL import Image

    img = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def config():
    """Fixture providing a valid scaler configuration."""
    from scaler.scaler_config import ScalerConfig

    return ScalerConfig(
        bucket='test-media',
        region='us-east-1',
        endpoint='https://test-endpoint.example.com:9000',
        access_key='test-access-key',
        secret_key='test-secret-key',
        build='test-build',
    )


@pytest.fixture
def debug_config(config):
    """Fixture providing a configuration with debug output enabled."""
    import dataclasses
    return dataclasses.replace(config, debug_output=True)


@pytest.fixture
def image_bytes():
    """Fixture returning the make_image_bytes helper."""
    return make_image_bytes


@pytest.fixture
def sample_png_bytes():
    """Fixture providing a 100x200 PNG."""
    return make_image_bytes((100, 200))


@pytest.fixture
def sample_jpeg_bytes():
    """Fixture providing a 300x150 JPEG."""
    return make_image_bytes((300, 150), color='blue', image_format='JPEG')


@pytest.fixture
def sample_rgba_png_bytes():
    """Fixture providing a PNG with transparency."""
    return make_image_bytes((80, 40), mode='RGBA', color=(255, 0, 0, 128))


@pytest.fixture
def sample_svg_bytes():
    """Fixture providing SVG text."""
    return SVG_BYTES


@pytest.fixture
def mock_store():
    """Fixture providing a mock storage client."""
    mock = MagicMock()
    mock.upload_object.return_value = '"etag"'
    return mock


def stored(body, content_type):
    """Build a StoredObject as returned by S3Client.download_object()."""
    from scaler.s3_client import StoredObject
    return StoredObject(body=body, content_type=content_type, content_length=len(body))


@pytest.fixture
def handler_factory(mock_store):
    """Fixture returning a function that builds a ScaleHandler over mock_store."""
    from scaler.handler import ScaleHandler, create_context

    def build(config, body=None, content_type='image/png'):
        if body is not None:
            mock_store.download_object.return_value = stored(body, content_type)
        return ScaleHandler(create_context(config, client=mock_store, logger=logging.getLogger('test')))

    return build


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    return logging.getLogger('test')
