# handlers/connection.py

import json
import logging

import websockets

from handlers.signaling_handler import SignalingHandler
from handlers.stream_handler import StreamHandler
from services.rate_limiter import RateLimiter

from constants import (
    CONNECTED, CREATE_STREAM, END_STREAM, ERROR_MESSAGE, GET_STREAMS, HOST_OFFER,
    ICE_CANDIDATE, INTERNAL_ERROR, INVALID_MESSAGE, PING, PONG,
    RATE_LIMIT_CLOSE_CODE, UNKNOWN_MESSAGE_TYPE, VIEWER_ANSWER,
    VIEWER_JOIN_STREAM, VIEWER_LEAVE_STREAM,
)

logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Serves WebSocket connections: identity assignment, rate limiting,
    parse/dispatch loop and registry cleanup when the socket goes away.

    One instance serves every connection; per-connection state lives in the
    ``handle_connection`` coroutine.
    """

    def __init__(self, relay, channel, rate_limiter: RateLimiter = None):
        """
        Args:
            relay (SessionRelay): Owner of the stream registry.
            channel (ConnectionManager): Delivery channel shared by all handlers.
            rate_limiter (RateLimiter, optional): Per-IP limiter. Defaults to
                a limiter with the constants.py tuning.
        """
        self.relay = relay
        self.channel = channel
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()

        stream_handler = StreamHandler(relay, channel)
        signaling_handler = SignalingHandler(relay, channel)

        # Mapping of message types to handler functions
        self.handlers = {
            GET_STREAMS:         stream_handler.handle_get_streams,
            CREATE_STREAM:       stream_handler.handle_create_stream,
            END_STREAM:          stream_handler.handle_end_stream,
            VIEWER_JOIN_STREAM:  stream_handler.handle_join_stream,
            VIEWER_LEAVE_STREAM: stream_handler.handle_leave_stream,
            HOST_OFFER:          signaling_handler.handle_host_offer,
            VIEWER_ANSWER:       signaling_handler.handle_viewer_answer,
            ICE_CANDIDATE:       signaling_handler.handle_ice_candidate,
        }

    async def handle_connection(self, ws):
        """
        Main entry point for a new WebSocket connection.

        Registers the socket, tells the client its identity, then runs the
        rate limit / parse / dispatch loop until the socket closes, and finally
        releases any stream or viewer role the connection held.

        Parameters:
            ws (websockets.asyncio.server.ServerConnection): The connection.

        Returns:
            None
        """
        conn_id = self.channel.register(ws)
        ip = ws.remote_address[0] if ws.remote_address else None
        logger.info(f"New connection {conn_id} from {ip}")
        self.channel.send(conn_id, CONNECTED, {"connectionId": conn_id})

        try:
            async for raw in ws:
                if not self.rate_limiter.allow(ip):
                    logger.warning(f"Rate limit exceeded for {ip}, closing {conn_id}")
                    await ws.close(code=RATE_LIMIT_CLOSE_CODE, reason="Rate limit exceeded")
                    break

                data = self._parse(raw)
                if data is None:
                    self._send_error(conn_id, INVALID_MESSAGE, "Invalid message format")
                    continue

                await self._dispatch(conn_id, data)
        except websockets.exceptions.ConnectionClosedError:
            logger.info(f"Connection {conn_id} closed abruptly")
        finally:
            self._cleanup(conn_id, ip)

    @staticmethod
    def _parse(raw):
        """
        Parse an inbound text frame.

        Parameters:
            raw (str | bytes): The raw WebSocket message.

        Returns:
            dict or None: The parsed JSON object, or None if the frame is not
            a JSON object.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    async def _dispatch(self, conn_id, data):
        """
        Dispatch a parsed message to the handler registered for its type.

        Pings are answered directly. Unknown types, and unexpected handler
        failures, result in an error-message to the sender only.

        Parameters:
            conn_id (str): Identity of the sending connection.
            data (dict): The parsed message.
        """
        msg_type = data.get("msg_type")
        logger.debug(f"Received {msg_type} from {conn_id}: {data}")
        if msg_type == PING:
            self.channel.send(conn_id, PONG)
            return

        handler = self.handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            logger.warning(f"Unknown msg_type from {conn_id}: {msg_type}")
            self._send_error(conn_id, UNKNOWN_MESSAGE_TYPE, "Unknown message type")
            return

        try:
            await handler(conn_id, data)
        except Exception:
            logger.exception(f"Handler for {msg_type} failed on {conn_id}")
            self._send_error(conn_id, INTERNAL_ERROR, "Internal server error")

    def _send_error(self, conn_id, code, message):
        self.channel.send(conn_id, ERROR_MESSAGE, {"message": message, "code": code})

    def _cleanup(self, conn_id, ip):
        """
        Release the connection's registry state and forget its rate window.

        The socket is unregistered before the disconnect notifications go out,
        so nothing is addressed to the closed connection itself.
        """
        self.channel.unregister(conn_id)
        self.channel.dispatch(self.relay.disconnect(conn_id))
        if not self.rate_limiter.is_banned(ip):
            self.rate_limiter.forget(ip)
        logger.info(f"Connection {conn_id} cleaned up")
