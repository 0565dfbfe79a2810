"""Shared pydantic base for camelCase request and response bodies."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Cursor(CamelModel):
	id: UUID
	created_at: datetime


class CursorPage(CamelModel):
	"""Keyset pagination body: ``{"cursor": {"id": ..., "createdAt": ...}}``."""

	cursor: Optional[Cursor] = None


PAGE_SIZE = 10
