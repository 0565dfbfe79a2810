"""Social graph domain exports."""

from . import audit  # noqa: F401
from .models import FRIEND_STATUSES, FRIEND_TRANSITIONS, Follow, Friendship  # noqa: F401
