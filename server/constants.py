"""
Application-wide constants for the stream relay: wire event names, error codes,
and default tuning values for the WebSocket server, rate limiter and logging.
"""

# --- Inbound events (client -> relay) ---
GET_STREAMS: str = "get-streams"
CREATE_STREAM: str = "create-stream"
END_STREAM: str = "end-stream"
VIEWER_JOIN_STREAM: str = "viewer-join-stream"
VIEWER_LEAVE_STREAM: str = "viewer-leave-stream"
HOST_OFFER: str = "host-offer"
VIEWER_ANSWER: str = "viewer-answer"
ICE_CANDIDATE: str = "ice-candidate"
PING: str = "ping"

# --- Outbound events (relay -> client) ---
CONNECTED: str = "connected"
PONG: str = "pong"
STREAM_LIST: str = "stream-list"
STREAM_CREATED: str = "stream-created"
STREAM_ADDED: str = "stream-added"
STREAM_ENDED: str = "stream-ended"
STREAM_REMOVED: str = "stream-removed"
STREAM_JOINED: str = "stream-joined"
NEW_VIEWER: str = "new-viewer"
VIEWER_LEFT: str = "viewer-left"
VIEWER_LIST_UPDATE: str = "viewer-list-update"
RECEIVE_OFFER: str = "receive-offer"
RECEIVE_ANSWER: str = "receive-answer"
#: ICE candidates travel under the same event name in both directions.
ICE_CANDIDATE_FORWARD: str = ICE_CANDIDATE
ERROR_MESSAGE: str = "error-message"

#: Notification target meaning "every connected client".
BROADCAST: str = "*"

# --- Error codes carried in error-message frames ---
INVALID_INPUT: str = "INVALID_INPUT"
STREAM_NOT_FOUND: str = "STREAM_NOT_FOUND"
STREAM_EXISTS: str = "STREAM_EXISTS"
ROLE_CONFLICT: str = "ROLE_CONFLICT"
INVALID_MESSAGE: str = "INVALID_MESSAGE"
UNKNOWN_MESSAGE_TYPE: str = "UNKNOWN_MESSAGE_TYPE"
INTERNAL_ERROR: str = "INTERNAL_ERROR"

# --- WebSocket Server Defaults ---
#: Address the server binds to unless WEBSOCKET_HOST is set.
DEFAULT_HOST: str = "0.0.0.0"
#: Port the server listens on unless WEBSOCKET_PORT is set.
DEFAULT_PORT: int = 3000
#: Largest inbound frame accepted, in bytes. SDP offers are a few KiB at most.
MAX_MESSAGE_BYTES: int = 64 * 1024
#: WebSocket close code sent to a client that exceeded the rate limit.
RATE_LIMIT_CLOSE_CODE: int = 4008

# --- WebSocket Heartbeat Configuration ---
#: Interval (in seconds) between keepalive pings to clients.
HEARTBEAT_INTERVAL: int = 10
#: Timeout (in seconds) to wait for a pong before closing.
HEARTBEAT_TIMEOUT: int = 15

# --- Rate Limiting ---
#: Length of the sliding window in seconds.
RATE_LIMIT_WINDOW: int = 5
#: Maximum frames accepted from one IP within the window.
RATE_LIMIT_MAX: int = 60
#: Ban duration in seconds once the limit is exceeded.
RATE_LIMIT_BAN: int = 30

# --- HTTP Query Endpoints ---
#: Read-only JSON listing of live streams.
STREAMS_PATH: str = "/api/streams"
#: Liveness probe.
HEALTH_PATH: str = "/health"
