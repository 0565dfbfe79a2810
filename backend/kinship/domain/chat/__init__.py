"""Conversation domain exports."""

from .models import Conversation, ConversationMessage  # noqa: F401
