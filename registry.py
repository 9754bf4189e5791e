import threading
from typing import Dict, Optional, Set

from logging_config import get_logger

logger = get_logger(__name__)


class RoomRegistry:
    """In-memory room membership for one relay instance.

    Rooms are created lazily on first join and deleted as soon as their last
    member leaves. A connection belongs to at most one room at a time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # {room_id: {connection_id, ...}}
        self._rooms: Dict[str, Set[str]] = {}
        # {connection_id: room_id}
        self._membership: Dict[str, str] = {}

    def join(self, connection_id: str, room_id: str) -> Optional[str]:
        """Add a connection to a room. Returns the room it was moved out of, if any."""
        with self._lock:
            current = self._membership.get(connection_id)
            if current == room_id:
                logger.debug(f"Connection {connection_id} already in room {room_id}")
                return None

            previous = None
            if current is not None:
                previous = self._remove(connection_id)
                logger.info(f"Connection {connection_id} moved from room {previous} to room {room_id}")

            members = self._rooms.get(room_id)
            if members is None:
                members = self._rooms[room_id] = set()
                logger.debug(f"Room {room_id} created")
            members.add(connection_id)
            self._membership[connection_id] = room_id
            logger.debug(f"Connection {connection_id} added to room {room_id} ({len(members)} members)")
            return previous

    def leave(self, connection_id: str) -> Optional[str]:
        """Remove a connection from its room. Returns the room left, or None if it never joined."""
        with self._lock:
            return self._remove(connection_id)

    def members_except(self, room_id: str, connection_id: str) -> Set[str]:
        with self._lock:
            members = self._rooms.get(room_id)
            if not members:
                return set()
            return members - {connection_id}

    def members(self, room_id: str) -> Set[str]:
        with self._lock:
            return set(self._rooms.get(room_id, ()))

    def room_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._membership.get(connection_id)

    def rooms(self) -> Dict[str, int]:
        """Snapshot of live rooms and their member counts."""
        with self._lock:
            return {room_id: len(members) for room_id, members in self._rooms.items()}

    def __contains__(self, room_id) -> bool:
        with self._lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _remove(self, connection_id: str) -> Optional[str]:
        # Caller holds the lock
        room_id = self._membership.pop(connection_id, None)
        if room_id is None:
            return None
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(connection_id)
            logger.debug(f"Connection {connection_id} removed from room {room_id} ({len(members)} members left)")
            if not members:
                del self._rooms[room_id]
                logger.debug(f"Room {room_id} deleted")
        return room_id
