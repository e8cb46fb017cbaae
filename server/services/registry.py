# services/registry.py
"""
In-memory registry of live streams and per-connection roles.

The registry is the single source of truth for who hosts what and who watches
what. Every public operation runs under one re-entrant lock, so no caller ever
observes a half-updated stream. Reads hand out copies.

A connection holds at most one role at a time, modelled as a tagged variant:
``Hosting(stream_id)`` or ``Viewing(stream_id, viewer)``. A connection with no
entry in the role table is unassigned.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from constants import INVALID_INPUT, ROLE_CONFLICT, STREAM_EXISTS, STREAM_NOT_FOUND

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class RegistryError(Exception):
    """
    Base class for registry failures that are reported back to the sender.

    Attributes:
        code (str): Machine readable error code sent to the client.
        message (str): Human readable description.
    """

    code = "REGISTRY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(RegistryError):
    code = INVALID_INPUT


class NotFound(RegistryError):
    code = STREAM_NOT_FOUND


class StreamConflict(RegistryError):
    """Raised when a stream id is already owned by another live host."""
    code = STREAM_EXISTS


class RoleConflict(RegistryError):
    """Raised when a connection's current role forbids the requested transition."""
    code = ROLE_CONFLICT


# -----------------------------------------------------------------------------
# Data model
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ViewerInfo:
    """Display metadata a viewer supplies when joining a stream."""
    viewer_id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "viewerId": self.viewer_id,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
        }


@dataclass(frozen=True)
class StreamInfo:
    """Public view of a stream: no viewer detail."""
    stream_id: str
    title: str
    host_id: str

    def to_dict(self) -> dict:
        return {"streamId": self.stream_id, "title": self.title, "hostId": self.host_id}


@dataclass
class Stream:
    stream_id: str
    title: str
    host_id: str
    viewers: Dict[str, ViewerInfo] = field(default_factory=dict)

    def info(self) -> StreamInfo:
        return StreamInfo(self.stream_id, self.title, self.host_id)


@dataclass(frozen=True)
class Hosting:
    stream_id: str


@dataclass(frozen=True)
class Viewing:
    stream_id: str
    viewer: ViewerInfo


Role = Union[Hosting, Viewing]


# -----------------------------------------------------------------------------
# Operation results
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class EndedStream:
    """A stream that was torn down, with the viewers that were still attached."""
    stream_id: str
    host_id: str
    viewer_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Departure:
    """A viewer detached from a stream whose host is still live."""
    stream_id: str
    host_id: str
    viewer_id: str


@dataclass(frozen=True)
class CreateOutcome:
    stream: StreamInfo
    ended: Optional[EndedStream] = None
    departed: Optional[Departure] = None


@dataclass(frozen=True)
class JoinOutcome:
    stream_id: str
    host_id: str
    departed: Optional[Departure] = None
    rejoined: bool = False


@dataclass(frozen=True)
class DisconnectOutcome:
    ended: Optional[EndedStream] = None
    departed: Optional[Departure] = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def normalize_id(value) -> str:
    """
    Normalise a caller supplied stream id or title.

    Args:
        value: Raw value from the client payload (any JSON type).

    Returns:
        str: The value converted to ``str`` and stripped, or ``""`` for None.
    """
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value) -> Optional[str]:
    # falsy values (0, false, "") mean "not provided"
    if not value:
        return None
    return str(value)


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------
class StreamRegistry:
    """
    Process-wide table of live streams and connection roles.

    Invariants maintained by every operation:
      - a stream exists iff its host connection is in the ``Hosting`` role for it;
      - a connection appears in at most one stream's viewer set;
      - a stream's viewer set never contains its own host.
    """

    def __init__(self) -> None:
        self.mutex = threading.RLock()
        self._streams: Dict[str, Stream] = {}
        self._roles: Dict[str, Role] = {}

    # ---- reads ----------------------------------------------------------
    def list_streams(self) -> List[StreamInfo]:
        """
        Snapshot of all live streams in creation order.

        Returns:
            List[StreamInfo]: One entry per stream, without viewer detail.
        """
        with self.mutex:
            return [stream.info() for stream in self._streams.values()]

    def get_viewer_list(self, stream_id) -> List[ViewerInfo]:
        """
        Snapshot of the viewers attached to a stream.

        Args:
            stream_id: Stream id; normalised before lookup.

        Returns:
            List[ViewerInfo]: Viewer metadata, empty if the stream does not exist.
        """
        with self.mutex:
            stream = self._streams.get(normalize_id(stream_id))
            if stream is None:
                return []
            return list(stream.viewers.values())

    def get_stream(self, stream_id) -> Optional[StreamInfo]:
        with self.mutex:
            stream = self._streams.get(normalize_id(stream_id))
            return stream.info() if stream else None

    def role_of(self, conn_id: str) -> Optional[Role]:
        """Return the connection's role, or None when it is unassigned."""
        with self.mutex:
            return self._roles.get(conn_id)

    # ---- host lifecycle -------------------------------------------------
    def create_stream(self, host_id: str, stream_id, title=None) -> CreateOutcome:
        """
        Register a new stream owned by ``host_id``.

        The stream id and title are trimmed; a blank title falls back to the id.
        If the connection already hosts the same id, only the title changes.
        If it hosts a different stream, that stream is ended first. If it is
        currently viewing, it leaves that stream first.

        Args:
            host_id (str): Connection identity of the host.
            stream_id: Requested stream id.
            title (optional): Human readable title.

        Returns:
            CreateOutcome: The created stream plus any implicit end/leave.

        Raises:
            InvalidInput: If the stream id is empty after trimming.
            StreamConflict: If another live host already owns the id.
        """
        sid = normalize_id(stream_id)
        if not sid:
            raise InvalidInput("Stream ID is required.")
        resolved_title = normalize_id(title) or sid

        with self.mutex:
            existing = self._streams.get(sid)
            if existing is not None and existing.host_id != host_id:
                raise StreamConflict(f"Stream '{sid}' is already live.")

            ended = None
            departed = None
            role = self._roles.get(host_id)
            if isinstance(role, Hosting) and role.stream_id == sid:
                existing.title = resolved_title
                logger.info(f"Stream {sid} re-titled by host {host_id}")
                return CreateOutcome(stream=existing.info())
            if isinstance(role, Hosting):
                ended = self._end(host_id, role)
            elif isinstance(role, Viewing):
                departed = self._detach(host_id, role)

            stream = Stream(stream_id=sid, title=resolved_title, host_id=host_id)
            self._streams[sid] = stream
            self._roles[host_id] = Hosting(sid)
            logger.info(f"Stream created: {sid} by host {host_id}")
            return CreateOutcome(stream=stream.info(), ended=ended, departed=departed)

    def end_stream(self, host_id: str) -> Optional[EndedStream]:
        """
        End the stream owned by ``host_id``.

        Args:
            host_id (str): Connection identity of the host.

        Returns:
            Optional[EndedStream]: The removed stream and its final viewers, or
            None when the connection is not hosting (a no-op, not an error).
        """
        with self.mutex:
            role = self._roles.get(host_id)
            if not isinstance(role, Hosting):
                return None
            return self._end(host_id, role)

    # ---- viewer lifecycle -----------------------------------------------
    def join_stream(self, viewer_id: str, stream_id, user=None) -> JoinOutcome:
        """
        Attach ``viewer_id`` to a stream, leaving any other stream first.

        Args:
            viewer_id (str): Connection identity of the viewer.
            stream_id: Stream to watch.
            user (dict, optional): ``displayName`` / ``avatarUrl`` metadata.

        Returns:
            JoinOutcome: Host of the joined stream, plus the implicit departure
            from the previous stream if there was one.

        Raises:
            InvalidInput: If the stream id is empty after trimming.
            NotFound: If no such stream is live.
            RoleConflict: If the connection is currently hosting.
        """
        sid = normalize_id(stream_id)
        if not sid:
            raise InvalidInput("Stream ID is required.")
        if not isinstance(user, dict):
            user = {}
        viewer = ViewerInfo(
            viewer_id=viewer_id,
            display_name=_optional_text(user.get("displayName")),
            avatar_url=_optional_text(user.get("avatarUrl")),
        )

        with self.mutex:
            stream = self._streams.get(sid)
            if stream is None:
                raise NotFound("Stream not found or has ended.")
            role = self._roles.get(viewer_id)
            if isinstance(role, Hosting):
                raise RoleConflict("End your own stream before joining another.")

            departed = None
            rejoined = isinstance(role, Viewing) and role.stream_id == sid
            if isinstance(role, Viewing) and not rejoined:
                departed = self._detach(viewer_id, role)

            stream.viewers[viewer_id] = viewer
            self._roles[viewer_id] = Viewing(sid, viewer)
            logger.info(f"Viewer {viewer_id} joined stream {sid}")
            return JoinOutcome(stream_id=sid, host_id=stream.host_id,
                               departed=departed, rejoined=rejoined)

    def leave_stream(self, viewer_id: str) -> Optional[Departure]:
        """
        Detach ``viewer_id`` from whatever it is watching.

        Returns:
            Optional[Departure]: The departure, or None if the connection was
            not viewing anything.
        """
        with self.mutex:
            role = self._roles.get(viewer_id)
            if not isinstance(role, Viewing):
                return None
            return self._detach(viewer_id, role)

    def disconnect(self, conn_id: str) -> DisconnectOutcome:
        """
        Tear down whatever role ``conn_id`` held.

        Roles are exclusive, so at most one of the outcome fields is set.
        """
        with self.mutex:
            role = self._roles.get(conn_id)
            if isinstance(role, Hosting):
                return DisconnectOutcome(ended=self._end(conn_id, role))
            if isinstance(role, Viewing):
                return DisconnectOutcome(departed=self._detach(conn_id, role))
            return DisconnectOutcome()

    # ---- internals (caller holds the mutex) -----------------------------
    def _end(self, host_id: str, role: Hosting) -> EndedStream:
        stream = self._streams.pop(role.stream_id)
        del self._roles[host_id]
        viewer_ids = tuple(stream.viewers)
        for viewer_id in viewer_ids:
            self._roles.pop(viewer_id, None)
        logger.info(f"Stream ended: {stream.stream_id} by host {host_id} "
                    f"({len(viewer_ids)} viewers released)")
        return EndedStream(stream.stream_id, stream.host_id, viewer_ids)

    def _detach(self, viewer_id: str, role: Viewing) -> Departure:
        stream = self._streams[role.stream_id]
        stream.viewers.pop(viewer_id, None)
        del self._roles[viewer_id]
        logger.info(f"Viewer {viewer_id} left stream {stream.stream_id}")
        return Departure(stream.stream_id, stream.host_id, viewer_id)
