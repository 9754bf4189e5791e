from fastapi import FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from relay import SignalingRelay
from schemas.signaling import WelcomeMessage
from constants import CORS_ORIGINS, LOG_LEVEL, LOG_FILE
from logging_config import get_logger, setup_logging
from typing import Optional

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def websocket_endpoint(websocket: WebSocket):
    """Signaling channel. Clients send join/offer/answer/candidate JSON frames."""
    relay: SignalingRelay = websocket.app.state.relay
    connection_id = None
    close_code = None

    try:
        await websocket.accept()
        connection_id = relay.register(websocket)
        logger.info(f"WebSocket connection accepted: {connection_id}")

        # Tell the client its own identity so it can recognise forwarded messages
        await websocket.send_text(WelcomeMessage(connection_id=connection_id).model_dump_json())

        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            message_count += 1
            data = message.get("text")
            if data is None:
                logger.debug(f"Dropping binary frame #{message_count} from connection {connection_id}")
                continue
            logger.debug(f"Received message #{message_count} from connection {connection_id}")
            await relay.handle_text(connection_id, data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected before the receive loop for connection {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
        close_code = status.WS_1011_INTERNAL_ERROR
    finally:
        # Runs on graceful close and on abrupt transport failure alike
        if connection_id:
            relay.unregister(connection_id)
        if close_code is not None and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close(code=close_code)
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")


def create_app(relay: Optional[SignalingRelay] = None) -> FastAPI:
    app = FastAPI(title="RoomRelay", description="Room-scoped WebRTC signaling relay")
    app.state.relay = relay if relay is not None else SignalingRelay()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    logger.info(f"FastAPI application initialized (allowed origins: {CORS_ORIGINS})")
    return app


app = create_app()
