"""Data access helpers for communities and memberships."""
from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from foundersocials.db.expressions import LIKE_ESCAPE, contains_pattern
from foundersocials.models import Community, CommunityMember, User
from foundersocials.models.community import ROLE_ADMIN, ROLE_MEMBER

__all__ = [
    "AlreadyMemberError",
    "CommunityRepository",
    "MembershipError",
    "NotMemberError",
    "SoleAdminError",
]

logger = logging.getLogger(__name__)

TRENDING_LIMIT = 5
SEARCH_LIMIT = 20


class MembershipError(ValueError):
    """Base exception for join/leave rule violations."""


class AlreadyMemberError(MembershipError):
    """Raised when joining a community the user already belongs to."""


class NotMemberError(MembershipError):
    """Raised when leaving a community the user does not belong to."""


class SoleAdminError(MembershipError):
    """Raised when the last admin tries to leave a community."""


class CommunityRepository:
    """Thin wrapper around database access for community entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, community_id: int) -> Community | None:
        return self.session.get(Community, community_id)

    def get_by_name(self, name: str) -> Community | None:
        return self.session.query(Community).filter(Community.name == name).first()

    def list_all(self) -> list[Community]:
        """Return every community, largest first."""
        return (
            self.session.query(Community)
            .order_by(Community.member_count.desc(), Community.id.asc())
            .all()
        )

    def list_trending(self, limit: int = TRENDING_LIMIT) -> list[Community]:
        return (
            self.session.query(Community)
            .order_by(Community.member_count.desc(), Community.id.asc())
            .limit(limit)
            .all()
        )

    def list_for_user(self, user_id: int) -> list[Community]:
        """Return the communities ``user_id`` is a member of."""
        return (
            self.session.query(Community)
            .join(CommunityMember, CommunityMember.community_id == Community.id)
            .filter(CommunityMember.user_id == user_id)
            .order_by(Community.display_name)
            .all()
        )

    def member_community_ids(self, user_id: int) -> list[int]:
        rows = self.session.query(CommunityMember.community_id).filter(
            CommunityMember.user_id == user_id
        )
        return [row.community_id for row in rows]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Community]:
        pattern = contains_pattern(query)
        return (
            self.session.query(Community)
            .filter(
                or_(
                    Community.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Community.display_name.ilike(pattern, escape=LIKE_ESCAPE),
                    Community.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
            .order_by(Community.member_count.desc())
            .limit(limit)
            .all()
        )

    def get_membership(self, user_id: int, community_id: int) -> CommunityMember | None:
        return self.session.query(CommunityMember).filter(
            CommunityMember.community_id == community_id,
            CommunityMember.user_id == user_id,
        ).first()

    def create(
        self,
        *,
        creator: User,
        name: str,
        display_name: str,
        description: str | None = None,
        icon_url: str | None = None,
        banner_url: str | None = None,
        visibility: str = "public",
    ) -> Community:
        """Create a community and make its creator the first admin."""
        community = Community(
            name=name,
            display_name=display_name,
            description=description,
            icon_url=icon_url,
            banner_url=banner_url,
            visibility=visibility,
            creator_id=creator.id,
            member_count=1,
        )
        try:
            self.session.add(community)
            self.session.flush()
            self.session.add(
                CommunityMember(user_id=creator.id, community_id=community.id, role=ROLE_ADMIN)
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(community)
        return community

    def join(self, user_id: int, community: Community) -> Community:
        """Add ``user_id`` as a member and bump the member count."""
        if self.get_membership(user_id, community.id) is not None:
            raise AlreadyMemberError("Already a member of this community")
        try:
            self.session.add(
                CommunityMember(user_id=user_id, community_id=community.id, role=ROLE_MEMBER)
            )
            community.member_count = Community.member_count + 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(community)
        return community

    def leave(self, user_id: int, community: Community) -> Community:
        """Remove the membership, refusing if the user is the only admin."""
        membership = self.get_membership(user_id, community.id)
        if membership is None:
            raise NotMemberError("Not a member of this community")

        if membership.role == ROLE_ADMIN:
            admin_count = self.session.query(func.count(CommunityMember.id)).filter(
                CommunityMember.community_id == community.id,
                CommunityMember.role == ROLE_ADMIN,
            ).scalar() or 0
            if admin_count <= 1:
                raise SoleAdminError(
                    "You are the only admin of this community. "
                    "Promote another member before leaving."
                )

        try:
            self.session.delete(membership)
            community.member_count = Community.member_count - 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(community)
        logger.debug("User %s left community %s", user_id, community.id)
        return community
