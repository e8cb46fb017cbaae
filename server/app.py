# server/app.py
import asyncio
import logging
import ssl

from websockets.asyncio.server import serve

from handlers.connection import ConnectionHandler
from services.channel import ConnectionManager
from services.config import Settings
from services.http_api import make_process_request
from services.logging_utils import setup_logging
from services.rate_limiter import RateLimiter
from services.relay import SessionRelay

logger = logging.getLogger(__name__)


def build_handler(settings: Settings) -> ConnectionHandler:
    """
    Wire the relay, delivery channel and rate limiter into a connection handler.

    Parameters:
        settings (Settings): Runtime configuration.

    Returns:
        ConnectionHandler: Handler whose ``handle_connection`` serves sockets.
    """
    rate_limiter = RateLimiter(
        window_seconds=settings.rate_limit_window,
        max_events=settings.rate_limit_max,
        ban_seconds=settings.rate_limit_ban,
    )
    return ConnectionHandler(SessionRelay(), ConnectionManager(), rate_limiter)


def create_ssl_context(settings: Settings):
    """
    Build a server TLS context when a certificate and key are configured.

    Returns:
        ssl.SSLContext or None: None means plain ``ws://``.
    """
    if not settings.tls_enabled:
        return None
    ssl_ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    ssl_ctx.load_cert_chain(certfile=settings.ssl_cert_file, keyfile=settings.ssl_key_file)
    return ssl_ctx


def create_server(handler: ConnectionHandler, settings: Settings):
    """
    Create (but do not start) the WebSocket server.

    The same port answers the read-only HTTP endpoints through
    ``process_request``.

    Parameters:
        handler (ConnectionHandler): Serves each accepted connection.
        settings (Settings): Bind address, TLS and keepalive configuration.

    Returns:
        websockets.asyncio.server.serve: Awaitable / async context manager.
    """
    return serve(
        handler.handle_connection,
        settings.host,
        settings.port,
        ssl=create_ssl_context(settings),
        process_request=make_process_request(handler.relay),
        ping_interval=settings.heartbeat_interval,
        ping_timeout=settings.heartbeat_timeout,
        max_size=settings.max_message_bytes,
    )


async def start_server(settings: Settings):
    """
    Run the relay server until the process is stopped.
    """
    handler = build_handler(settings)
    async with create_server(handler, settings):
        scheme = "wss" if settings.tls_enabled else "ws"
        logger.info(f"Relay server started on {scheme}://{settings.host}:{settings.port}")
        await asyncio.Future()  # Run forever


def main():
    """
    Entry point: load settings, configure logging and serve.
    """
    settings = Settings.from_env()
    setup_logging(level=settings.log_level, logs_dir=settings.log_dir)
    logger.info("Starting relay server...")
    try:
        asyncio.run(start_server(settings))
    except KeyboardInterrupt:
        logger.info("Relay server stopped")


if __name__ == "__main__":
    main()
