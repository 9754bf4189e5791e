import asyncio
import json
import uuid
from typing import Any, Dict, Optional

from pydantic import ValidationError

from logging_config import get_logger
from registry import RoomRegistry
from schemas.signaling import JoinMessage, inbound_message_adapter

logger = get_logger(__name__)


class SignalingRelay:
    """Forwards offer/answer/candidate messages between members of the same room.

    The relay never looks inside negotiation payloads. Malformed messages are
    dropped so one misbehaving connection cannot affect anyone else.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None):
        self.registry = registry if registry is not None else RoomRegistry()
        # {connection_id: websocket}
        self.connections: Dict[str, Any] = {}

    def register(self, websocket) -> str:
        connection_id = str(uuid.uuid4())
        self.connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} registered ({len(self.connections)} active)")
        return connection_id

    def unregister(self, connection_id: str):
        self.connections.pop(connection_id, None)
        room_id = self.registry.leave(connection_id)
        if room_id is not None:
            logger.info(f"Connection {connection_id} left room {room_id}")
        logger.info(f"Connection {connection_id} unregistered ({len(self.connections)} active)")

    async def handle_text(self, connection_id: str, data: str) -> int:
        try:
            message = json.loads(data)
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError and oversized integer literals
            logger.debug(f"Dropping undecodable frame from connection {connection_id}: {type(e).__name__}")
            return 0
        return await self.handle_message(connection_id, message)

    async def handle_message(self, connection_id: str, message: Any) -> int:
        """Dispatch one decoded message. Returns the number of connections it was forwarded to."""
        try:
            parsed = inbound_message_adapter.validate_python(message)
        except ValidationError as e:
            kind = message.get("type") if isinstance(message, dict) else None
            logger.debug(f"Dropping malformed message (type={kind}) from connection {connection_id}: {e.error_count()} errors")
            return 0

        if isinstance(parsed, JoinMessage):
            self.registry.join(connection_id, parsed.room)
            logger.info(f"Connection {connection_id} joined room {parsed.room}")
            return 0

        targets = self.registry.members_except(parsed.room, connection_id)
        if not targets:
            logger.debug(f"No recipients for {parsed.type} from {connection_id} in room {parsed.room}")
            return 0

        event = parsed.forward(sender=connection_id)
        return await self._fan_out(targets, json.dumps(event.model_dump()), parsed.type, parsed.room)

    async def _fan_out(self, targets, payload: str, kind: str, room_id: str) -> int:
        recipients = []
        send_tasks = []
        for target_id in targets:
            ws = self.connections.get(target_id)
            if ws is None:
                continue
            recipients.append(target_id)
            send_tasks.append(ws.send_text(payload))

        results = await asyncio.gather(*send_tasks, return_exceptions=True)
        delivered = 0
        for target_id, result in zip(recipients, results):
            if isinstance(result, BaseException):
                logger.warning(f"Error sending {kind} to connection {target_id} in room {room_id}: {result}")
            else:
                delivered += 1
        logger.debug(f"Forwarded {kind} in room {room_id} to {delivered}/{len(recipients)} connections")
        return delivered
