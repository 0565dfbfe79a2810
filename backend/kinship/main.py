"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from kinship.api import (
	auth,
	conversations,
	follows,
	friends,
	notifications,
	ops,
	posts,
	profile,
	uploads,
	users,
)
from kinship.api.errors import install_error_handlers
from kinship.api.middleware_request_id import RequestIdMiddleware
from kinship.domain.store import Store
from kinship.infra import postgres
from kinship.infra.storage import LocalAttachmentStorage
from kinship.obs import init as obs_init
from kinship.realtime.gateway import EventGateway
from kinship.realtime.registry import ConnectionRegistry
from kinship.realtime.rooms import RoomDirectory
from kinship.realtime.sockets import CentralNamespace, GlobalChatNamespace
from kinship.settings import settings


def build_gateway(store: Store, storage: LocalAttachmentStorage) -> EventGateway:
	return EventGateway(
		ConnectionRegistry(),
		notifications=store.notifications,
		friends=store.friends,
		conversations=store.conversations,
		identity=store.identity,
		rooms=RoomDirectory(history_limit=settings.global_chat_history_limit),
		storage=storage,
	)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


store = Store()
storage = LocalAttachmentStorage()
gateway = build_gateway(store, storage)

app = FastAPI(title="Kinship API", lifespan=lifespan)
app.state.store = store
app.state.storage = storage
app.state.gateway = gateway
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

storage.root.mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=str(storage.root), check_dir=False), name="files")

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
sio.register_namespace(CentralNamespace(gateway))
sio.register_namespace(GlobalChatNamespace(gateway))
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.add_middleware(RequestIdMiddleware)

app.include_router(auth.router, tags=["identity"])
app.include_router(profile.router, tags=["profile"])
app.include_router(follows.router, tags=["social"])
app.include_router(friends.router, tags=["social"])
app.include_router(conversations.router, tags=["chat"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(posts.router, tags=["posts"])
app.include_router(users.router, tags=["identity"])
app.include_router(uploads.router, tags=["utils"])
app.include_router(ops.router, tags=["ops"])
