"""
FastAPI application for the blind E2EE relay.
Stores and forwards opaque ciphertext, public keys and wrapped room keys;
never decrypts anything.
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

import config
from cleanup import CleanupWorker
from errors import RelayError
from models import (
    CreateRoomRequest,
    JoinRoomRequest,
    PublicKeyRequest,
    ReceiptRequest,
    RoomKeyRequest,
    SendE2EERequest,
    SendMessageRequest,
)
from relay_service import RelayService
from room_models import (
    DirectedMessage,
    E2EEMessageSent,
    MaintenanceResult,
    MessageSent,
    Ok,
    PublicKeyInfo,
    Receipt,
    RoomCreated,
    RoomInfo,
    RoomJoined,
    RoomKeyInfo,
    RoomMessage,
    RoomUsers,
    Success,
)
from security import log_security_event

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)

router = APIRouter()


def get_relay(request: Request) -> RelayService:
    return request.app.state.relay


# ============ LIFESPAN CONTEXT ============
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the background sweeper on startup, stop it on shutdown."""
    worker = CleanupWorker(app.state.relay, interval=app.state.sweep_interval)
    app.state.cleanup = worker
    worker.start()
    logger.info("Relay started successfully")
    yield
    await worker.stop()
    logger.info("Relay shutting down")


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent content type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        # Responses carry ciphertext and keys; never cache them
        response.headers["Cache-Control"] = "no-store"
        if not config.DEBUG:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# ============ ERROR MAPPING ============

async def relay_error_handler(request: Request, exc: RelayError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    logger.debug(f"Rejected {request.url.path}: invalid fields {fields}")
    return JSONResponse({"error": "Missing required fields", "fields": fields}, status_code=400)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({"error": "Not found"}, status_code=404)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# ============ STATUS ============

@router.get("/")
async def status(relay: RelayService = Depends(get_relay)):
    return relay.status()


@router.get("/health")
async def health_check():
    return {"status": "ok"}


# ============ ROOM ENDPOINTS ============

@router.post("/create-room", response_model=RoomCreated)
@limiter.limit(config.ROOM_CREATE_RATE_LIMIT)
async def create_room(request: Request, body: CreateRoomRequest,
                      relay: RelayService = Depends(get_relay)):
    """Create a room, or overwrite its metadata if it already exists."""
    return relay.create_room(body.roomId, body.hostId, body.e2eeEnabled)


@router.post("/join-room", response_model=RoomJoined)
async def join_room(body: JoinRoomRequest, relay: RelayService = Depends(get_relay)):
    return relay.join_room(body.roomId, body.userId)


@router.get("/room/{room_id}", response_model=RoomInfo)
async def get_room_info(room_id: str, relay: RelayService = Depends(get_relay)):
    """Check whether a room exists. Absent rooms answer exists=false, not 404."""
    return relay.room_info(room_id)


@router.get("/room/{room_id}/users", response_model=RoomUsers)
async def list_room_users(room_id: str, relay: RelayService = Depends(get_relay)):
    return relay.list_users(room_id)


# ============ KEY ENDPOINTS ============

@router.post("/pubkeys/{room_id}/{user_id}", response_model=Ok)
@limiter.limit(config.KEY_WRITE_RATE_LIMIT)
async def publish_public_key(request: Request, room_id: str, user_id: str, body: PublicKeyRequest,
                             relay: RelayService = Depends(get_relay)):
    relay.put_public_key(room_id, user_id, body.publicKey)
    return Ok()


@router.get("/pubkeys/{room_id}/{user_id}", response_model=PublicKeyInfo)
async def get_public_key(room_id: str, user_id: str, relay: RelayService = Depends(get_relay)):
    return relay.get_public_key(room_id, user_id)


@router.post("/roomkeys/{room_id}", response_model=Ok)
@limiter.limit(config.KEY_WRITE_RATE_LIMIT)
async def store_room_key(request: Request, room_id: str, body: RoomKeyRequest,
                         relay: RelayService = Depends(get_relay)):
    """Only the first write for a room is accepted; later writes get 409."""
    relay.put_room_key(room_id, body.encryptedKey)
    return Ok()


@router.get("/roomkeys/{room_id}", response_model=RoomKeyInfo)
async def get_room_key(room_id: str, relay: RelayService = Depends(get_relay)):
    return relay.get_room_key(room_id)


# ============ MESSAGE ENDPOINTS ============

@router.post("/send", response_model=MessageSent)
@limiter.limit(config.SEND_RATE_LIMIT)
async def send_message(request: Request, body: SendMessageRequest,
                       relay: RelayService = Depends(get_relay)):
    return relay.send_broadcast(body.roomId, body.senderId, body.message, body.expirationTime)


@router.get("/messages/{room_id}", response_model=List[RoomMessage])
async def get_messages(room_id: str, relay: RelayService = Depends(get_relay)):
    return relay.list_broadcast(room_id)


@router.post("/send-e2ee", response_model=E2EEMessageSent)
@limiter.limit(config.SEND_RATE_LIMIT)
async def send_e2ee_message(request: Request, body: SendE2EERequest,
                            relay: RelayService = Depends(get_relay)):
    """Fan one logical message out to one ciphertext per recipient."""
    return relay.send_directed(body.roomId, body.senderId, body.recipientPayloads,
                               body.expirationTime)


@router.get("/messages-e2ee/{room_id}/{user_id}", response_model=List[DirectedMessage])
async def get_e2ee_messages(room_id: str, user_id: str, relay: RelayService = Depends(get_relay)):
    return relay.list_directed(room_id, user_id)


# ============ RECEIPT ENDPOINTS ============

@router.post("/receipts", response_model=Success)
async def append_receipt(body: ReceiptRequest, relay: RelayService = Depends(get_relay)):
    relay.append_receipt(body.roomId, body.messageId, body.recipientId, body.type)
    return Success()


@router.get("/receipts/{room_id}", response_model=List[Receipt])
async def get_receipts(room_id: str, relay: RelayService = Depends(get_relay)):
    return relay.list_receipts(room_id)


@router.post("/maintenance/cleanup", response_model=MaintenanceResult)
async def manual_cleanup(request: Request, relay: RelayService = Depends(get_relay)):
    log_security_event("manual_cleanup", {"client": get_remote_address(request)})
    return relay.run_maintenance()


def create_app(relay: Optional[RelayService] = None,
               sweep_interval: Optional[float] = None) -> FastAPI:
    """Build the application around one explicitly constructed relay store."""
    app = FastAPI(title="E2EE Relay", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.relay = relay or RelayService()
    app.state.sweep_interval = sweep_interval
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=config.ALLOWED_HOSTS)

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        app.state.relay.record_request()
        return await call_next(request)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
