"""Tests for ScaleHandler class."""

import base64
import io
import json

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError
from PIL import Image

from scaler.errors import ConfigError, ObjectTooLarge
from scaler.handler import create_context
from scaler.scaler_config import ScalerConfig


def client_error(code, message, operation='GetObject'):
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


def decode_jpeg(envelope):
    return Image.open(io.BytesIO(base64.b64decode(envelope.body)))


class TestCreateContext:
    """Tests for create_context()."""

    def test_wires_components(self, config, mock_store, logger):
        """Test configuration flows into the pipeline components."""
        context = create_context(config, client=mock_store, logger=logger)

        assert context.client is mock_store
        assert context.fetcher.max_bytes == config.max_origin_bytes
        assert context.generator.quality == config.jpeg_quality
        assert context.publisher.cache_control == 'max-age=64800'
        assert context.publisher.tagging == 'temp'

    def test_invalid_config(self, mock_store):
        """Test invalid configuration is rejected at startup."""
        with pytest.raises(ConfigError) as exc:
            create_context(ScalerConfig(bucket=''), client=mock_store)

        assert 'MEDIA_BUCKET' in exc.value.detail


class TestHandleKey:
    """Tests for ScaleHandler.handle_key()."""

    def test_raster_success(self, config, handler_factory, mock_store, sample_png_bytes):
        """Test a 100x200 PNG requested at 50 is served and stored as a 25x50 JPEG."""
        handler = handler_factory(config, sample_png_bytes, 'image/png')

        envelope = handler.handle_key('abc123/50')

        assert envelope.status_code == 200
        assert envelope.is_binary
        assert envelope.content_type == 'image/jpeg'
        assert decode_jpeg(envelope).size == (25, 50)

        mock_store.download_object.assert_called_once_with(
            'test-media', 'media/abc123', max_bytes=config.max_origin_bytes
        )
        args, kwargs = mock_store.upload_object.call_args
        assert args[:2] == ('test-media', 'media/abc123/50')
        assert args[2] == base64.b64decode(envelope.body)
        assert kwargs == {
            'content_type': 'image/jpeg',
            'acl': 'public-read',
            'cache_control': 'max-age=64800',
            'tagging': 'temp',
        }

    def test_media_prefix(self, config, handler_factory, mock_store, sample_png_bytes):
        """Test media/<id>/<size> requests address the same objects."""
        handler = handler_factory(config, sample_png_bytes)

        envelope = handler.handle_key('media/abc123/50')

        assert envelope.status_code == 200
        assert mock_store.download_object.call_args.args[1] == 'media/abc123'

    def test_svg_pass_through(self, config, handler_factory, mock_store, sample_svg_bytes):
        """Test SVG originals are served and stored byte-for-byte."""
        handler = handler_factory(config, sample_svg_bytes, 'image/svg+xml')

        envelope = handler.handle_key('logo/300')

        assert envelope.status_code == 200
        assert envelope.content_type == 'image/svg+xml'
        assert envelope.body_bytes() == sample_svg_bytes
        args, kwargs = mock_store.upload_object.call_args
        assert args == ('test-media', 'media/logo/300', sample_svg_bytes)
        assert kwargs['content_type'] == 'image/svg+xml'

    def test_size_out_of_range(self, config, handler_factory, mock_store):
        """Test out-of-range sizes are rejected before touching the store."""
        handler = handler_factory(config)

        envelope = handler.handle_key('abc/10')

        assert envelope.status_code == 422
        assert '20 to 2560' in json.loads(envelope.body)['error']
        mock_store.download_object.assert_not_called()
        mock_store.upload_object.assert_not_called()

    def test_malformed_key(self, config, handler_factory, mock_store):
        handler = handler_factory(config)

        envelope = handler.handle_key('abc')

        assert envelope.status_code == 422
        assert '<object-id>/<scaled-size>' in json.loads(envelope.body)['error']
        mock_store.download_object.assert_not_called()

    def test_fetch_failure(self, config, handler_factory, mock_store):
        """Test store failures return 500 without publishing."""
        handler = handler_factory(config)
        mock_store.download_object.side_effect = client_error('AccessDenied', 'Access Denied')

        envelope = handler.handle_key('abc/100')

        assert envelope.status_code == 500
        assert json.loads(envelope.body) == {'error': 'Failed to retrieve object from media store'}
        mock_store.upload_object.assert_not_called()

    def test_fetch_timeout(self, config, handler_factory, mock_store):
        handler = handler_factory(config)
        mock_store.download_object.side_effect = ReadTimeoutError(endpoint_url='https://s3')

        envelope = handler.handle_key('abc/100')

        assert envelope.status_code == 500
        mock_store.upload_object.assert_not_called()

    def test_not_found(self, config, handler_factory, mock_store):
        """Test a missing original returns 404."""
        handler = handler_factory(config)
        mock_store.download_object.side_effect = client_error('NoSuchKey', 'The specified key does not exist.')

        envelope = handler.handle_key('missing/100')

        assert envelope.status_code == 404
        mock_store.upload_object.assert_not_called()

    def test_origin_too_large(self, config, handler_factory, mock_store):
        """Test oversized originals return 500 without scaling."""
        handler = handler_factory(config)
        mock_store.download_object.side_effect = ObjectTooLarge(config.max_origin_bytes, 30 * 1024 * 1024)

        envelope = handler.handle_key('huge/100')

        assert envelope.status_code == 500
        assert json.loads(envelope.body)['error'] == 'object too large'
        mock_store.upload_object.assert_not_called()

    def test_scale_failure(self, config, handler_factory, mock_store):
        """Test undecodable originals return 500 without publishing."""
        handler = handler_factory(config, b'definitely not an image', 'image/jpeg')

        envelope = handler.handle_key('broken/100')

        assert envelope.status_code == 500
        assert json.loads(envelope.body)['error'] == 'Failed to set up image scaling pipeline'
        mock_store.upload_object.assert_not_called()

    def test_oversized_output_refused(self, config, handler_factory, mock_store, image_bytes):
        """Test a tiny wide original requested at the maximum height returns 500."""
        handler = handler_factory(config, image_bytes((600, 20)), 'image/png')

        envelope = handler.handle_key('panorama/2560')

        assert envelope.status_code == 500
        assert json.loads(envelope.body) == {'error': 'Failed to set up image scaling pipeline'}
        mock_store.upload_object.assert_not_called()

    def test_publish_failure_still_serves(self, config, handler_factory, mock_store, sample_png_bytes):
        """Test a failed write back still returns the derivative."""
        handler = handler_factory(config, sample_png_bytes)
        mock_store.upload_object.side_effect = client_error('AccessDenied', 'Access Denied', 'PutObject')

        envelope = handler.handle_key('abc123/50')

        assert envelope.status_code == 200
        assert decode_jpeg(envelope).size == (25, 50)

    def test_unexpected_error(self, config, handler_factory, mock_store):
        """Test unexpected exceptions become a 500 envelope."""
        handler = handler_factory(config)
        mock_store.download_object.side_effect = RuntimeError('boom')

        envelope = handler.handle_key('abc/100')

        assert envelope.status_code == 500
        assert json.loads(envelope.body) == {'error': 'Internal server error'}

    def test_detail_hidden_without_debug(self, config, handler_factory, mock_store):
        """Test store diagnostics are not leaked in normal mode."""
        handler = handler_factory(config)
        mock_store.download_object.side_effect = client_error('AccessDenied', 'secret bucket policy text')

        envelope = handler.handle_key('abc/100')

        assert 'secret bucket policy text' not in envelope.body


class TestDebugOutput:
    """Tests for diagnostic mode."""

    def test_success_returns_diagnostics(self, debug_config, handler_factory, mock_store, sample_png_bytes):
        """Test debug mode answers 222 with the recorded values."""
        handler = handler_factory(debug_config, sample_png_bytes)

        envelope = handler.handle_key('abc123/50')

        assert envelope.status_code == 222
        data = json.loads(envelope.body)
        assert data['build'] == 'test-build'
        assert data['s3_bucket'] == 'test-media'
        assert data['key'] == 'abc123/50'
        assert data['key_parts'] == 2
        assert data['object_id'] == 'abc123'
        assert data['requested_size'] == 50
        assert data['received_content_size'] == len(sample_png_bytes)
        assert data['content_type'] == 'image/png'
        assert data['done'] is True
        assert data['status_code'] == 200
        scaled = Image.open(io.BytesIO(base64.b64decode(data['scaled_image'])))
        assert scaled.size == (25, 50)

    def test_pipeline_still_runs(self, debug_config, handler_factory, mock_store, sample_png_bytes):
        """Test debug mode does not skip publishing."""
        handler = handler_factory(debug_config, sample_png_bytes)

        handler.handle_key('abc123/50')

        mock_store.upload_object.assert_called_once()

    def test_svg_diagnostics(self, debug_config, handler_factory, sample_svg_bytes):
        handler = handler_factory(debug_config, sample_svg_bytes, 'image/svg+xml')

        data = json.loads(handler.handle_key('logo/100').body)

        assert data['svg_image_original_as_is'] == sample_svg_bytes.decode('utf-8')
        assert 'scaled_image' not in data

    def test_error_detail_exposed(self, debug_config, handler_factory, mock_store):
        """Test failures in debug mode report the underlying store message."""
        handler = handler_factory(debug_config)
        mock_store.download_object.side_effect = client_error('AccessDenied', 'Access Denied')

        envelope = handler.handle_key('abc/100')

        assert envelope.status_code == 222
        data = json.loads(envelope.body)
        assert data['status_code'] == 500
        assert data['error'] == 'Failed to retrieve object from media store'
        assert data['error_detail'] == 'Access Denied'
        assert 'done' not in data

    def test_publish_error_recorded(self, debug_config, handler_factory, mock_store, sample_png_bytes):
        handler = handler_factory(debug_config, sample_png_bytes)
        mock_store.upload_object.side_effect = client_error('AccessDenied', 'Access Denied', 'PutObject')

        data = json.loads(handler.handle_key('abc123/50').body)

        assert data['status_code'] == 200
        assert 'Access Denied' in data['publish_error']
        assert data['done'] is True

    def test_bad_input_not_replaced(self, debug_config, handler_factory):
        """Test 422 responses are returned as-is in debug mode."""
        handler = handler_factory(debug_config)

        assert handler.handle_key('abc/1').status_code == 422


class TestHandleEvent:
    """Tests for ScaleHandler.handle_event()."""

    @pytest.fixture
    def handler(self, config, handler_factory, sample_png_bytes):
        return handler_factory(config, sample_png_bytes)

    def test_query_key(self, handler):
        envelope = handler.handle_event({'queryStringParameters': {'key': 'abc/50'}})

        assert envelope.status_code == 200

    def test_query_object(self, handler, mock_store):
        """Test the object query parameter is accepted as an alias."""
        handler.handle_event({'queryStringParameters': {'object': 'abc/50'}})

        assert mock_store.download_object.call_args.args[1] == 'media/abc'

    def test_path_parameters(self, handler, mock_store):
        envelope = handler.handle_event({'pathParameters': {'id': 'abc', 'size': '50'}})

        assert envelope.status_code == 200
        assert mock_store.upload_object.call_args.args[1] == 'media/abc/50'

    def test_json_string_event(self, handler):
        envelope = handler.handle_event(json.dumps({'queryStringParameters': {'key': 'abc/50'}}))

        assert envelope.status_code == 200

    def test_invalid_json(self, handler):
        """Test unparseable events return 500 without the parser message."""
        envelope = handler.handle_event('{not json')

        assert envelope.status_code == 500
        assert json.loads(envelope.body) == {'error': 'Failed to parse request JSON'}

    def test_invalid_json_detail_in_debug(self, debug_config, handler_factory):
        """Test the parser message is only exposed in diagnostic mode."""
        envelope = handler_factory(debug_config).handle_event('{not json')

        assert envelope.status_code == 500
        assert 'detail' in json.loads(envelope.body)

    @pytest.mark.parametrize('event', ['[1, 2]', '"abc/50"', '42', b'[1]'])
    def test_json_not_an_object(self, handler, mock_store, event):
        """Test JSON events that are not objects return 500 instead of raising."""
        envelope = handler.handle_event(event)

        assert envelope.status_code == 500
        assert json.loads(envelope.body) == {'error': 'Request JSON must be an object'}
        mock_store.download_object.assert_not_called()

    @pytest.mark.parametrize('event', [
        {'queryStringParameters': 'key=abc/50'},
        {'queryStringParameters': ['abc/50']},
        {'pathParameters': 'abc/50'},
        {'queryStringParameters': {'key': 123}},
        {'queryStringParameters': {'key': ['abc/50']}},
    ])
    def test_malformed_parameters(self, handler, mock_store, event):
        """Test parameter maps or keys of the wrong type are treated as missing."""
        envelope = handler.handle_event(event)

        assert envelope.status_code == 422
        assert json.loads(envelope.body)['error'] == "'key' not specified"
        mock_store.download_object.assert_not_called()

    def test_non_string_key(self, handler, mock_store):
        """Test handle_key rejects keys that are not strings."""
        envelope = handler.handle_key(123)

        assert envelope.status_code == 422
        mock_store.download_object.assert_not_called()

    @pytest.mark.parametrize('event', [None, {}, {'queryStringParameters': None}, {'pathParameters': {'id': 'abc'}}])
    def test_missing_key(self, handler, mock_store, event):
        """Test requests without a key are rejected."""
        envelope = handler.handle_event(event)

        assert envelope.status_code == 422
        assert json.loads(envelope.body)['error'] == "'key' not specified"
        mock_store.download_object.assert_not_called()

    def test_handler_is_reusable(self, handler):
        """Test one handler serves independent requests."""
        first = handler.handle_event({'queryStringParameters': {'key': 'abc/50'}})
        second = handler.handle_event({'queryStringParameters': {'key': 'abc/10'}})
        third = handler.handle_event({'queryStringParameters': {'key': 'abc/100'}})

        assert [first.status_code, second.status_code, third.status_code] == [200, 422, 200]
        assert decode_jpeg(third).size == (50, 100)
