from contextlib import asynccontextmanager
from typing import List, Optional
import json
import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from messenger.config import Settings
from messenger.errors import StorageError
from messenger.logging_setup import configure_logging
from messenger.relay import RoomRelay, InvalidCommand, parse_command
from messenger.schemas import MessageIn, StoredMessage, ErrorResponse
from messenger.storage import MessageStore, open_store
from messenger.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def get_relay(request: Request) -> RoomRelay:
    """Dependency for FastAPI routes"""
    return request.app.state.relay


def create_app(settings: Optional[Settings] = None, store: Optional[MessageStore] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        message_store = store or await open_store(settings)
        app.state.store = message_store
        app.state.relay = RoomRelay(message_store, app.state.manager)
        logger.info(f"Messenger ready with {message_store.kind} storage")
        try:
            yield
        finally:
            await message_store.close()

    # Create FastAPI app
    app = FastAPI(
        title="Messenger",
        description="Real-time chat rooms over HTTP and WebSocket",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.manager = ConnectionManager()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root(request: Request):
        """Root endpoint - health check"""
        return {
            "status": "ok",
            "message": "Messenger API is running",
            "storage": request.app.state.store.kind,
        }

    @app.get(
        "/messages/{chat_id}",
        response_model=List[StoredMessage],
        responses={500: {"model": ErrorResponse}},
    )
    async def get_messages(chat_id: str, relay: RoomRelay = Depends(get_relay)):
        """Message history of one chat, oldest first"""
        try:
            return await relay.history(chat_id)
        except StorageError:
            logger.exception(f"Failed to load messages for chat {chat_id}")
            return JSONResponse(status_code=500, content={"error": "Failed to load messages"})

    @app.post(
        "/messages",
        response_model=StoredMessage,
        responses={500: {"model": ErrorResponse}},
    )
    async def post_message(message: MessageIn, relay: RoomRelay = Depends(get_relay)):
        """Save a message and return the stored record"""
        try:
            return await relay.submit(message)
        except StorageError:
            logger.exception(f"Failed to save message for chat {message.chat_id}")
            return JSONResponse(status_code=500, content={"error": "Failed to save message"})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for real-time messaging"""
        manager: ConnectionManager = websocket.app.state.manager
        relay: RoomRelay = websocket.app.state.relay
        connection = await manager.connect(websocket)

        try:
            while True:
                # Receive frame from client
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))

                raw = frame.get("text")
                if raw is None:
                    # Binary frames are not part of the protocol
                    await relay.reject(connection, InvalidCommand(None, "Invalid JSON"))
                    continue
                try:
                    command = parse_command(json.loads(raw))
                except json.JSONDecodeError:
                    await relay.reject(connection, InvalidCommand(None, "Invalid JSON"))
                    continue
                except InvalidCommand as e:
                    await relay.reject(connection, e)
                    continue

                await relay.dispatch(connection, command)

        except WebSocketDisconnect:
            logger.info(f"Client {connection.id} left")
        except Exception as e:
            logger.error(f"WebSocket error on {connection.id}: {e}")
        finally:
            manager.disconnect(connection)

    return app


app = create_app()


def run():
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
