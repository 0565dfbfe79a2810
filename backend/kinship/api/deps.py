"""FastAPI dependencies resolving the components built in ``kinship.main``."""

from __future__ import annotations

from fastapi import Request

from kinship.domain.store import Store
from kinship.realtime.gateway import EventGateway
from kinship.infra.storage import LocalAttachmentStorage


def get_gateway(request: Request) -> EventGateway:
	return request.app.state.gateway


def get_store(request: Request) -> Store:
	return request.app.state.store


def get_storage(request: Request) -> LocalAttachmentStorage:
	return request.app.state.storage
