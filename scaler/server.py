"""
HTTP adapter exposing the scaler through bottle.

Routes:

    GET /scale?key=<id>/<size>
    GET /media/<id>/<size>
    GET /health
"""

import json
from functools import wraps

from bottle import Bottle, HTTPResponse, request

from .handler import ScaleHandler
from .response import ResponseEnvelope


def allow_cross_origin(func):
    """Decorate a view function to allow cross domain access."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        result = func(*args, **kwargs)
        if isinstance(result, HTTPResponse):
            result.set_header('Access-Control-Allow-Origin', '*')
        return result
    return wrapper


def to_http_response(envelope: ResponseEnvelope) -> HTTPResponse:
    """Convert an envelope into a bottle response, decoding binary bodies."""
    r = HTTPResponse(body=envelope.body_bytes(), status=envelope.status_code)
    for name, value in envelope.headers.items():
        r.set_header(name, value)
    return r


def create_app(handler: ScaleHandler) -> Bottle:
    """Build a bottle application serving thumbnails through handler."""
    app = Bottle()
    logger = handler.logger

    @app.route('/scale')
    @allow_cross_origin
    def scale():
        """Scale the object named by the `key` query parameter."""
        raw_key = request.query.get('key') or request.query.get('object')
        logger.debug(f"scale request: {raw_key}")
        event = {'queryStringParameters': {'key': raw_key} if raw_key else {}}
        return to_http_response(handler.handle_event(event))

    @app.route('/media/<object_id>/<size>')
    @allow_cross_origin
    def media(object_id, size):
        """Serve media/<id>/<size>, generating it on demand."""
        return to_http_response(handler.handle_key(f"{object_id}/{size}"))

    @app.route('/health')
    def health():
        r = HTTPResponse(body=json.dumps({'ok': True}), status=200)
        r.set_header('Content-Type', 'application/json')
        return r

    return app
