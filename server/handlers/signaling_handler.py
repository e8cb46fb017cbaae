# handlers/signaling_handler.py
import logging

from handlers.stream_handler import get_payload

logger = logging.getLogger(__name__)


class SignalingHandler:
    """
    Relays WebRTC handshake messages (SDP offers, answers and ICE candidates)
    between a host and one of its viewers.

    Payloads are opaque and forwarded verbatim. Routing is by the target's
    connection id only; an unknown or departed target is silently dropped.
    """

    def __init__(self, relay, channel):
        self.relay = relay
        self.channel = channel

    async def handle_host_offer(self, conn_id, data):
        """
        Forward a host's SDP offer to the viewer named in the payload.

        Args:
            conn_id (str): Identity of the host sending the offer.
            data (dict): Parsed message; payload carries 'offer' and 'viewerId'.
        """
        payload = get_payload(data)
        logger.debug(f"Offer from {conn_id}: {payload.get('offer')}")
        self.channel.dispatch(self.relay.forward_offer(conn_id, payload))

    async def handle_viewer_answer(self, conn_id, data):
        """
        Forward a viewer's SDP answer to the host named in the payload.

        Args:
            conn_id (str): Identity of the viewer sending the answer.
            data (dict): Parsed message; payload carries 'answer' and 'hostId'.
        """
        payload = get_payload(data)
        logger.debug(f"Answer from {conn_id}: {payload.get('answer')}")
        self.channel.dispatch(self.relay.forward_answer(conn_id, payload))

    async def handle_ice_candidate(self, conn_id, data):
        # Either side may send; the relay does not distinguish host from viewer.
        payload = get_payload(data)
        self.channel.dispatch(self.relay.forward_ice_candidate(conn_id, payload))
