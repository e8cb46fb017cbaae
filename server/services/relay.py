# services/relay.py
"""
Session relay: turns client events into registry mutations and computes the
notifications that follow from them.

Every public method returns a list of :class:`Notification` triples instead of
sending anything itself. The caller hands that list to the delivery channel,
which keeps the relay free of transport concerns and trivially testable.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import (
    BROADCAST, ERROR_MESSAGE, ICE_CANDIDATE_FORWARD, NEW_VIEWER, RECEIVE_ANSWER,
    RECEIVE_OFFER, STREAM_ADDED, STREAM_CREATED, STREAM_ENDED, STREAM_JOINED,
    STREAM_LIST, STREAM_REMOVED, VIEWER_LEFT, VIEWER_LIST_UPDATE,
)
from services.registry import (
    Departure, EndedStream, RegistryError, StreamRegistry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """
    One outbound message: deliver ``event`` with ``payload`` to ``target``.

    ``target`` is a connection identity, or ``BROADCAST`` for every client.
    """
    target: str
    event: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_broadcast(self) -> bool:
        return self.target == BROADCAST


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def _target(value) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


class SessionRelay:
    """
    Bridges inbound requests to the :class:`StreamRegistry`.

    The registry is owned exclusively by the relay. Each mutating request runs
    its registry call and notification fan-out under the registry mutex, so the
    viewer lists it reports always match committed state.
    """

    def __init__(self, registry: StreamRegistry = None):
        self.registry = registry if registry is not None else StreamRegistry()

    # ---- read-only queries ----------------------------------------------
    def list_streams(self) -> List[dict]:
        """
        Public listing of live streams for non-realtime callers.

        Returns:
            List[dict]: ``{streamId, title, hostId}`` for every live stream.
        """
        return [info.to_dict() for info in self.registry.list_streams()]

    def get_streams(self, conn_id: str) -> List[Notification]:
        return [Notification(conn_id, STREAM_LIST, {"streams": self.list_streams()})]

    # ---- host lifecycle ---------------------------------------------------
    def create_stream(self, conn_id: str, data=None) -> List[Notification]:
        """
        Handle a host's create request.

        Args:
            conn_id (str): Identity of the requesting connection.
            data (dict, optional): ``{streamId, title?}``.

        Returns:
            List[Notification]: Any implicit end/leave notifications, then the
            ack to the host, the ``stream-added`` broadcast, and the host's
            (initially empty) viewer list.
        """
        data = _payload(data)
        try:
            with self.registry.mutex:
                outcome = self.registry.create_stream(
                    conn_id, data.get("streamId"), data.get("title"))
                notes = []
                if outcome.ended is not None:
                    notes.extend(self._ended_notes(outcome.ended))
                if outcome.departed is not None:
                    notes.extend(self._departure_notes(outcome.departed))
                announced = {"streamId": outcome.stream.stream_id,
                             "title": outcome.stream.title}
                notes.append(Notification(conn_id, STREAM_CREATED, announced))
                notes.append(Notification(BROADCAST, STREAM_ADDED, dict(announced)))
                notes.append(self._viewer_list_note(outcome.stream.stream_id, conn_id))
                return notes
        except RegistryError as e:
            return self._error(conn_id, "create-stream", e)

    def end_stream(self, conn_id: str) -> List[Notification]:
        """End the caller's stream; a silent no-op if it is not hosting."""
        with self.registry.mutex:
            ended = self.registry.end_stream(conn_id)
            if ended is None:
                logger.debug(f"end-stream from {conn_id} ignored: not hosting")
                return []
            return self._ended_notes(ended)

    # ---- viewer lifecycle -------------------------------------------------
    def join_stream(self, conn_id: str, data=None) -> List[Notification]:
        """
        Handle a viewer's join request.

        When the viewer was watching another stream, the old host is told it
        left before the new host learns about it. A re-join of the same stream
        only refreshes the host's viewer list.

        Args:
            conn_id (str): Identity of the joining connection.
            data (dict, optional): ``{streamId, user?: {displayName?, avatarUrl?}}``.

        Returns:
            List[Notification]: Notifications for the old host, the new host
            and the viewer's own ack.
        """
        data = _payload(data)
        try:
            with self.registry.mutex:
                outcome = self.registry.join_stream(
                    conn_id, data.get("streamId"), data.get("user"))
                notes = []
                if outcome.departed is not None:
                    notes.extend(self._departure_notes(outcome.departed))
                if not outcome.rejoined:
                    notes.append(Notification(outcome.host_id, NEW_VIEWER,
                                              {"viewerId": conn_id}))
                notes.append(self._viewer_list_note(outcome.stream_id, outcome.host_id))
                notes.append(Notification(conn_id, STREAM_JOINED, {
                    "streamId": outcome.stream_id,
                    "hostId": outcome.host_id,
                }))
                return notes
        except RegistryError as e:
            return self._error(conn_id, "viewer-join-stream", e)

    def leave_stream(self, conn_id: str) -> List[Notification]:
        """Detach the caller from its stream; a silent no-op if not viewing."""
        with self.registry.mutex:
            departed = self.registry.leave_stream(conn_id)
            if departed is None:
                return []
            return self._departure_notes(departed)

    def disconnect(self, conn_id: str) -> List[Notification]:
        """
        Clean up after a closed connection.

        Emits the end-stream set for a host or the leave-stream set for a
        viewer; nothing for an unassigned connection.
        """
        with self.registry.mutex:
            outcome = self.registry.disconnect(conn_id)
            if outcome.ended is not None:
                logger.info(f"Stream {outcome.ended.stream_id} removed because host disconnected")
                return self._ended_notes(outcome.ended)
            if outcome.departed is not None:
                return self._departure_notes(outcome.departed)
            return []

    # ---- handshake forwarding --------------------------------------------
    # Targets are trusted: the relay routes by raw identity and never checks
    # that the target is a party to the sender's stream.
    def forward_offer(self, conn_id: str, data=None) -> List[Notification]:
        data = _payload(data)
        target = _target(data.get("viewerId"))
        if target is None:
            return []
        logger.debug(f"Forwarding offer from {conn_id} to {target}")
        return [Notification(target, RECEIVE_OFFER,
                             {"offer": data.get("offer"), "hostId": conn_id})]

    def forward_answer(self, conn_id: str, data=None) -> List[Notification]:
        data = _payload(data)
        target = _target(data.get("hostId"))
        if target is None:
            return []
        logger.debug(f"Forwarding answer from {conn_id} to {target}")
        return [Notification(target, RECEIVE_ANSWER,
                             {"answer": data.get("answer"), "viewerId": conn_id})]

    def forward_ice_candidate(self, conn_id: str, data=None) -> List[Notification]:
        data = _payload(data)
        target = _target(data.get("targetId"))
        if target is None:
            return []
        return [Notification(target, ICE_CANDIDATE_FORWARD,
                             {"candidate": data.get("candidate"), "senderId": conn_id})]

    # ---- notification builders --------------------------------------------
    def _viewer_list_note(self, stream_id: str, host_id: str) -> Notification:
        viewers = [v.to_dict() for v in self.registry.get_viewer_list(stream_id)]
        return Notification(host_id, VIEWER_LIST_UPDATE, {
            "streamId": stream_id,
            "count": len(viewers),
            "viewers": viewers,
        })

    def _ended_notes(self, ended: EndedStream) -> List[Notification]:
        notes = [Notification(viewer_id, STREAM_ENDED, {"streamId": ended.stream_id})
                 for viewer_id in ended.viewer_ids]
        notes.append(Notification(BROADCAST, STREAM_REMOVED, {"streamId": ended.stream_id}))
        return notes

    def _departure_notes(self, departed: Departure) -> List[Notification]:
        return [
            Notification(departed.host_id, VIEWER_LEFT, {"viewerId": departed.viewer_id}),
            self._viewer_list_note(departed.stream_id, departed.host_id),
        ]

    @staticmethod
    def _error(conn_id: str, msg_type: str, error: RegistryError) -> List[Notification]:
        logger.info(f"{msg_type} from {conn_id} rejected: {error.code} {error.message}")
        return [Notification(conn_id, ERROR_MESSAGE,
                             {"message": error.message, "code": error.code})]
