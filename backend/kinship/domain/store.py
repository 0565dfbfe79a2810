"""Bundle of the Postgres repositories used by routers and the gateway."""

from __future__ import annotations

from dataclasses import dataclass, field

from kinship.domain.chat.repo import ConversationRepository
from kinship.domain.identity.repo import IdentityRepository
from kinship.domain.notifications.repo import NotificationRepository
from kinship.domain.posts.repo import PostRepository
from kinship.domain.social.repo import FollowRepository, FriendRepository


@dataclass(slots=True)
class Store:
	identity: IdentityRepository = field(default_factory=IdentityRepository)
	follows: FollowRepository = field(default_factory=FollowRepository)
	friends: FriendRepository = field(default_factory=FriendRepository)
	conversations: ConversationRepository = field(default_factory=ConversationRepository)
	notifications: NotificationRepository = field(default_factory=NotificationRepository)
	posts: PostRepository = field(default_factory=PostRepository)
