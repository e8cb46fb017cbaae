# handlers/stream_handler.py
import logging

logger = logging.getLogger(__name__)


def get_payload(data):
    """
    Extract the event payload from an inbound message.

    Args:
        data (dict): Parsed message, expected to carry a 'payload' object.

    Returns:
        dict: The payload, or {} if missing or not an object.
    """
    payload = data.get("payload")
    return payload if isinstance(payload, dict) else {}


class StreamHandler:
    """
    Handles stream lifecycle events from hosts and viewers: listing,
    creating, ending, joining and leaving streams.
    """

    def __init__(self, relay, channel):
        """
        Args:
            relay (SessionRelay): Owner of the stream registry.
            channel (ConnectionManager): Delivery channel for notifications.
        """
        self.relay = relay
        self.channel = channel

    async def handle_get_streams(self, conn_id, data):
        """
        Reply to the requester with the current list of live streams.
        """
        self.channel.dispatch(self.relay.get_streams(conn_id))

    async def handle_create_stream(self, conn_id, data):
        """
        Create a stream owned by the requesting connection.

        Args:
            conn_id (str): Identity of the host connection.
            data (dict): Parsed message; payload carries 'streamId' and optional 'title'.

        Side Effects:
            Acks the host, broadcasts 'stream-added' and pushes the host's
            viewer list, or sends an error-message on failure.
        """
        payload = get_payload(data)
        logger.info(f"Create stream request from {conn_id}: {payload.get('streamId')!r}")
        self.channel.dispatch(self.relay.create_stream(conn_id, payload))

    async def handle_end_stream(self, conn_id, data):
        self.channel.dispatch(self.relay.end_stream(conn_id))

    async def handle_join_stream(self, conn_id, data):
        """
        Attach the requesting connection to a stream as a viewer.

        Args:
            conn_id (str): Identity of the viewer connection.
            data (dict): Parsed message; payload carries 'streamId' and optional
                'user' with 'displayName' / 'avatarUrl'.

        Side Effects:
            Notifies the previous host (if switching), the new host and the viewer.
        """
        payload = get_payload(data)
        logger.info(f"Join request from {conn_id} for stream {payload.get('streamId')!r}")
        self.channel.dispatch(self.relay.join_stream(conn_id, payload))

    async def handle_leave_stream(self, conn_id, data):
        self.channel.dispatch(self.relay.leave_stream(conn_id))
