"""
Request ID tracking.

Every request gets an id (from X-Request-ID when the caller sends one),
available as g.request_id and echoed back in the response header.
"""
import logging
import uuid

from flask import g, request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'


def init_request_id_tracking(app) -> None:
    @app.before_request
    def assign_request_id():
        incoming = request.headers.get(REQUEST_ID_HEADER, '')
        g.request_id = incoming[:64] if incoming else uuid.uuid4().hex

    @app.after_request
    def add_request_id_header(response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        if response.status_code >= 500:
            logger.error(f"[{request_id}] {request.method} {request.path} -> {response.status_code}")
        return response
