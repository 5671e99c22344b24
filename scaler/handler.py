"""
ScaleHandler - Runs the parse, fetch, scale and publish pipeline for a request.

Usage:

    context = create_context(ScalerConfig.from_env())
    envelope = ScaleHandler(context).handle_key('abc123/200')

An invocation will:

    - Parse <id>/<size> (an optional media/ prefix is tolerated)
    - Download the original from media/<id>
    - Scale raster images to the requested height as JPEG; SVG stays SVG
    - Store the result at media/<id>/<size>, tagged as temporary
    - Return the derivative, or diagnostics (status 222) when debug output
      is enabled
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .diagnostics import DEBUG_STATUS_CODE, Diagnostics
from .errors import BadRequest, PublishError, ScalerError
from .fetcher import OriginFetcher
from .object_reference import ObjectReference, parse
from .publisher import DerivativePublisher
from .response import (
    ResponseEnvelope, bad_input_error, derived_response, error_response,
    gateway_response, server_error)
from .s3_client import S3Client
from .scaler_config import ScalerConfig
from .thumbnail_generator import ImageClass, ThumbnailGenerator


@dataclass(frozen=True)
class ScalerContext:
    """Everything a request needs, built once at startup."""
    config: ScalerConfig
    client: object
    fetcher: OriginFetcher
    generator: ThumbnailGenerator
    publisher: DerivativePublisher
    logger: logging.Logger


def create_context(
    config: ScalerConfig,
    client=None,
    logger: Optional[logging.Logger] = None
) -> ScalerContext:
    """
    Validate configuration and wire the pipeline components.

    Args:
        config: Scaler configuration
        client: Storage client (defaults to an S3Client built from config)
        logger: Optional logger instance

    Raises:
        ConfigError: The configuration is invalid
    """
    config.require_valid()
    logger = logger or logging.getLogger('scaler')
    if client is None:
        client = S3Client(config, logger)

    return ScalerContext(
        config=config,
        client=client,
        fetcher=OriginFetcher(client, max_bytes=config.max_origin_bytes, logger=logger),
        generator=ThumbnailGenerator(quality=config.jpeg_quality, logger=logger),
        publisher=DerivativePublisher(
            client,
            cache_control=config.cache_control,
            tagging=config.tagging,
            logger=logger,
        ),
        logger=logger,
    )


class ScaleHandler:
    """Maps a request to a ResponseEnvelope; never raises."""

    def __init__(self, context: ScalerContext):
        self.context = context
        self.config = context.config
        self.logger = context.logger

    def handle_event(self, event: Union[dict, str, None]) -> ResponseEnvelope:
        """
        Handle an API gateway proxy event.

        The key is read from queryStringParameters.key (or .object), or from
        pathParameters.id and pathParameters.size.
        """
        if isinstance(event, (str, bytes)):
            try:
                event = json.loads(event)
            except ValueError as e:
                self.logger.warning(f"Failed to parse request JSON: {e}")
                return server_error("Failed to parse request JSON", self._public_detail(str(e)))
        event = event or {}
        if not isinstance(event, dict):
            self.logger.warning(f"Request JSON is a {type(event).__name__}, not an object")
            return server_error("Request JSON must be an object")

        query = self._params(event, 'queryStringParameters')
        raw_key = query.get('key') or query.get('object')

        if not raw_key:
            path_params = self._params(event, 'pathParameters')
            if path_params.get('id') and path_params.get('size'):
                raw_key = f"{path_params['id']}/{path_params['size']}"

        if not raw_key or not isinstance(raw_key, str):
            self.logger.info("Returning bad input error: 'key' not specified")
            return bad_input_error("'key' not specified")

        return self.handle_key(raw_key)

    def handle_key(self, raw_key: str) -> ResponseEnvelope:
        """Run the pipeline for a raw <id>/<size> key."""
        if not isinstance(raw_key, str):
            self.logger.info("Returning bad input error: 'key' not specified")
            return bad_input_error("'key' not specified")

        diagnostics = Diagnostics(self.config.debug_output, self.logger)
        diagnostics.log_val('build', self.config.build)
        diagnostics.log_val('s3_bucket', self.config.bucket)
        diagnostics.log_val('key', raw_key)
        diagnostics.log_val('key_parts', len([p for p in raw_key.split('/') if p]))

        try:
            ref = parse(raw_key, self.config.min_size, self.config.max_size)
        except BadRequest as e:
            self.logger.info(f"Returning bad input error: {e.message}")
            return bad_input_error(e.message)

        diagnostics.log_val('object_id', ref.id)
        diagnostics.log_val('requested_size', ref.requested_size)

        try:
            envelope = self._run(ref, diagnostics)
        except ScalerError as e:
            envelope = self._error_response(e, diagnostics)
        except Exception as e:
            self.logger.exception(f"Unexpected error scaling {raw_key}")
            envelope = self._error_response(
                ScalerError("Internal server error", f"{type(e).__name__}: {e}"),
                diagnostics,
            )

        if diagnostics.enabled:
            diagnostics.record('status_code', envelope.status_code)
            return gateway_response(DEBUG_STATUS_CODE, diagnostics.to_json())
        return envelope

    def _run(self, ref: ObjectReference, diagnostics: Diagnostics) -> ResponseEnvelope:
        bucket = self.config.bucket

        origin = self.context.fetcher.fetch(bucket, ref)
        diagnostics.log_val('received_content_size', origin.content_length)
        diagnostics.log_val('content_type', origin.content_type)

        derived = self.context.generator.scale(origin, ref.requested_size, diagnostics)
        del origin

        try:
            result = self.context.publisher.publish(bucket, ref, derived)
            diagnostics.log_val('publish_key', result.key)
        except PublishError as e:
            # The thumbnail is still served; only the cached copy is lost
            self.logger.warning(f"Serving {ref.derived_key} without storing it: {e}")
            diagnostics.record('publish_error', str(e))

        if diagnostics.enabled:
            if derived.image_class is ImageClass.VECTOR:
                diagnostics.record(
                    'svg_image_original_as_is', derived.data.decode('utf-8', errors='replace')
                )
            else:
                diagnostics.record('scaled_image', base64.b64encode(derived.data).decode('ascii'))
            diagnostics.record('done', True)

        return derived_response(derived)

    @staticmethod
    def _params(event: dict, name: str) -> dict:
        """A parameter map from the event; anything that is not a dict is empty."""
        params = event.get(name)
        return params if isinstance(params, dict) else {}

    def _public_detail(self, detail: Optional[str]) -> Optional[str]:
        """Internal detail is only shown in diagnostic mode."""
        return detail if self.config.debug_output else None

    def _error_response(self, error: ScalerError, diagnostics: Diagnostics) -> ResponseEnvelope:
        self.logger.warning(f"Returning error {error.status_code}: {error}")
        diagnostics.record('error', error.message)
        if error.detail:
            diagnostics.record('error_detail', error.detail)

        detail = error.detail if diagnostics.enabled else None
        if error.status_code == 422:
            return bad_input_error(error.message)
        return error_response(error.status_code, error.message, detail)
