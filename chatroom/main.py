import logging
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .clock import Clock
from .config import Settings, load_settings
from .database import create_engine, create_session_factory, init_db
from .errors import (
    BackingStoreError,
    ChatError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .models import Message, status_message
from .registry import ParticipantRegistry
from .schemas import MessageIn, MessageOut, ParticipantIn, ParticipantOut, strip_markup
from .store import MessageStore, tail
from .sweeper import LivenessSweeper

logger = logging.getLogger(__name__)

ARRIVAL_TEXT = "entra na sala..."

STATUS_CODES = {
    ValidationError: 422,
    ConflictError: 409,
    NotFoundError: 404,
    UnauthorizedError: 401,
    BackingStoreError: 500,
}

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema, run the liveness sweeper, dispose on shutdown."""
    await init_db(app.state.engine)
    app.state.sweeper.start()
    try:
        yield
    finally:
        await app.state.sweeper.stop()
        await app.state.engine.dispose()


async def handle_chat_error(request: Request, exc: ChatError):
    return JSONResponse(status_code=STATUS_CODES[type(exc)], content={"detail": exc.detail})


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or load_settings()
    clock = clock or Clock()

    app = FastAPI(title="chatroom", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for exc_class in STATUS_CODES:
        app.add_exception_handler(exc_class, handle_chat_error)

    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    session_factory = create_session_factory(engine)
    registry = ParticipantRegistry(session_factory, clock)
    store = MessageStore(session_factory, clock)

    app.state.settings = settings
    app.state.clock = clock
    app.state.engine = engine
    app.state.registry = registry
    app.state.store = store
    app.state.sweeper = LivenessSweeper(
        registry,
        store,
        clock,
        interval=settings.sweep_interval,
        timeout=settings.heartbeat_timeout,
    )

    app.include_router(router)
    return app


# Dependencies for endpoints
def get_registry(request: Request) -> ParticipantRegistry:
    return request.app.state.registry


def get_store(request: Request) -> MessageStore:
    return request.app.state.store


def get_user(user: Optional[str] = Header(default=None)) -> Optional[str]:
    """Acting participant, carried in the ``User`` header."""
    return strip_markup(user) or None


RegistryDep = Annotated[ParticipantRegistry, Depends(get_registry)]
StoreDep = Annotated[MessageStore, Depends(get_store)]
UserDep = Annotated[Optional[str], Depends(get_user)]


def parse_limit(limit: Optional[str]) -> Optional[int]:
    if limit is None:
        return None
    # plain ASCII digits only; int() would also take "+3", " 5 " and "1_0"
    if not (limit.isascii() and limit.isdigit()) or int(limit) <= 0:
        raise ValidationError("Limit deve ser um número inteiro positivo!")
    return int(limit)


async def require_live_sender(registry: ParticipantRegistry, user: Optional[str]) -> str:
    if not user or await registry.get(user) is None:
        raise ValidationError("Remetente não está na sala!")
    return user


@router.post("/participants", status_code=201)
async def register_participant(body: ParticipantIn, registry: RegistryDep, store: StoreDep):
    await registry.join(body.name)
    try:
        await store.append(status_message(body.name, ARRIVAL_TEXT))
    except BackingStoreError:
        # participant is already admitted
        logger.exception("could not record arrival of %r", body.name)
    return Response(status_code=201)


@router.get("/participants", response_model=List[ParticipantOut])
async def list_participants(registry: RegistryDep):
    return [ParticipantOut.from_row(p) for p in await registry.list()]


@router.post("/messages", status_code=201)
async def post_message(body: MessageIn, user: UserDep, registry: RegistryDep, store: StoreDep):
    sender = await require_live_sender(registry, user)
    await store.append(Message(sender=sender, recipient=body.to, text=body.text, type=body.type))
    return Response(status_code=201)


@router.get("/messages", response_model=List[MessageOut])
async def list_messages(user: UserDep, store: StoreDep, limit: Optional[str] = None):
    limit_value = parse_limit(limit)
    messages = await store.visible_to(user)
    if limit_value is not None:
        messages = tail(messages, limit_value)
    return [MessageOut.from_row(m) for m in messages]


@router.post("/status")
async def heartbeat(user: UserDep, registry: RegistryDep):
    if not user:
        raise NotFoundError("Participante não informado!")
    await registry.heartbeat(user)
    return Response(status_code=200)


@router.put("/messages/{message_id}")
async def edit_message(message_id: int, body: MessageIn, user: UserDep, store: StoreDep):
    await store.update_owned(message_id, user or "", to=body.to, text=body.text, type=body.type)
    return Response(status_code=200)


@router.delete("/messages/{message_id}")
async def delete_message(message_id: int, user: UserDep, store: StoreDep):
    await store.delete_owned(message_id, user or "")
    return Response(status_code=200)
