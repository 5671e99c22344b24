"""
ResponseEnvelope - API gateway proxy style responses.
"""

import base64
import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .thumbnail_generator import ImageClass, JPEG_CONTENT_TYPE, SVG_CONTENT_TYPE


JSON_CONTENT_TYPE = 'application/json'


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Terminal artifact of a request.

    Attributes:
        status_code: HTTP status code
        headers: Response headers (read-only)
        body: Text body, base64 when is_binary is set
        is_binary: Body is base64-encoded binary data
    """
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ''
    is_binary: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get('Content-Type')

    def body_bytes(self) -> bytes:
        """The body as raw bytes, decoding base64 for binary envelopes."""
        if self.is_binary:
            return base64.b64decode(self.body)
        return self.body.encode('utf-8')

    def to_dict(self) -> dict:
        """Render the gateway proxy JSON structure."""
        data = {
            'statusCode': self.status_code,
            'headers': dict(self.headers),
            'body': self.body,
        }
        if self.is_binary:
            data['isBase64Encoded'] = True
        return data


def gateway_response(
    status_code: int,
    payload: str,
    content_type: str = JSON_CONTENT_TYPE,
    is_binary: bool = False
) -> ResponseEnvelope:
    return ResponseEnvelope(
        status_code=status_code,
        headers={'Content-Type': content_type},
        body=payload,
        is_binary=is_binary,
    )


def json_response(status_code: int, data: dict) -> ResponseEnvelope:
    return gateway_response(status_code, json.dumps(data, default=str))


def error_response(status_code: int, message: str, detail: Optional[str] = None) -> ResponseEnvelope:
    """JSON error body; detail is only included when the caller passes one."""
    data = {'error': message}
    if detail:
        data['detail'] = detail
    return json_response(status_code, data)


def bad_input_error(message: str) -> ResponseEnvelope:
    return error_response(422, message)


def not_found_error(message: str, detail: Optional[str] = None) -> ResponseEnvelope:
    return error_response(404, message, detail)


def server_error(message: str, detail: Optional[str] = None) -> ResponseEnvelope:
    return error_response(500, message, detail)


def derived_response(derived) -> ResponseEnvelope:
    """
    Serve a derivative inline.

    Raster output is returned base64-encoded; SVG is returned as text, or
    base64 if it is not valid UTF-8.
    """
    if derived.image_class is ImageClass.VECTOR:
        try:
            text = derived.data.decode('utf-8')
        except UnicodeDecodeError:
            return gateway_response(
                200,
                base64.b64encode(derived.data).decode('ascii'),
                SVG_CONTENT_TYPE,
                is_binary=True,
            )
        return gateway_response(200, text, SVG_CONTENT_TYPE)

    return gateway_response(
        200,
        base64.b64encode(derived.data).decode('ascii'),
        derived.content_type or JPEG_CONTENT_TYPE,
        is_binary=True,
    )
