# services/http_api.py
"""
Read-only HTTP endpoints served on the WebSocket port.

``websockets`` calls ``process_request`` before the opening handshake. Returning
a response answers a plain HTTP request; returning None lets the WebSocket
handshake continue.
"""
import json
import logging
from http import HTTPStatus
from urllib.parse import urlsplit

from constants import HEALTH_PATH, STREAMS_PATH

logger = logging.getLogger(__name__)


def make_process_request(relay):
    """
    Build the ``process_request`` hook bound to a relay.

    Args:
        relay (SessionRelay): Source of the live stream listing.

    Returns:
        Callable: Hook suitable for ``websockets.serve(process_request=...)``.
    """

    def process_request(connection, request):
        path = urlsplit(request.path).path
        if path == STREAMS_PATH:
            body = json.dumps({"streams": relay.list_streams()})
            response = connection.respond(HTTPStatus.OK, body)
            del response.headers["Content-Type"]
            response.headers["Content-Type"] = "application/json"
            logger.debug(f"Served {STREAMS_PATH}")
            return response
        if path == HEALTH_PATH:
            return connection.respond(HTTPStatus.OK, "OK\n")
        return None

    return process_request
