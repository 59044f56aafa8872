"""
Engagement Ledger: likes, comment likes and follows.

Each edge is a two-state machine {ABSENT, PRESENT} per (actor, target) pair.
Transitions are idempotent: adding a PRESENT edge or removing an ABSENT one
succeeds with changed=False. The unique constraints on the tables are the
concurrency guard; a duplicate insert that loses a race is absorbed the
same way.
"""
import logging
from typing import Any

from opentelemetry import trace
from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.errors import (
    CommentNotFound,
    InsertFailed,
    PostNotFound,
    SelfFollowNotAllowed,
    UserNotFound,
)
from photofeed.models import Comment, CommentLike, Follow, Like, Post, User
from photofeed.schemas import EdgeState
from photofeed.telemetry import ENGAGEMENT_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class EngagementLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── edge primitives ────────────────────────────────────────────────────

    async def _edge_exists(self, model, keys: dict[str, Any]) -> bool:
        found = await self.db.scalar(select(model.id).where(_match(model, keys)))
        return found is not None

    async def _add_edge(self, model, keys: dict[str, Any]) -> bool:
        """Insert the edge; returns False if it was already present."""
        if await self._edge_exists(model, keys):
            return False

        self.db.add(model(**keys))
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            # Lost a race against an identical insert → already PRESENT.
            # Anything else (e.g. the target vanished) is a real failure.
            if await self._edge_exists(model, keys):
                logger.info("Duplicate %s insert absorbed: %s", model.__tablename__, keys)
                return False
            raise InsertFailed() from exc
        return True

    async def _remove_edge(self, model, keys: dict[str, Any]) -> bool:
        """Delete the edge; returns False if it was already absent."""
        result = await self.db.execute(delete(model).where(_match(model, keys)))
        await self.db.commit()
        return result.rowcount > 0

    async def _set_edge(self, edge: str, model, keys: dict[str, Any], active: bool) -> EdgeState:
        with tracer.start_as_current_span(f"set_{edge}") as span:
            if active:
                changed = await self._add_edge(model, keys)
            else:
                changed = await self._remove_edge(model, keys)

            span.set_attribute("edge.changed", changed)
            ENGAGEMENT_MUTATIONS_TOTAL.labels(
                edge=edge,
                action="add" if active else "remove",
                changed=str(changed).lower(),
            ).inc()
            logger.info(
                "%s %s %s (changed=%s)", edge, "add" if active else "remove", keys, changed
            )
            return EdgeState(active=active, changed=changed)

    # ── public operations ──────────────────────────────────────────────────

    async def set_post_like(self, user_id: str, post_id: str, liked: bool) -> EdgeState:
        if liked and await self.db.get(Post, post_id) is None:
            raise PostNotFound()
        return await self._set_edge(
            "like", Like, {"post_id": post_id, "user_id": user_id}, liked
        )

    async def set_comment_like(self, user_id: str, comment_id: str, liked: bool) -> EdgeState:
        if liked and await self.db.get(Comment, comment_id) is None:
            raise CommentNotFound()
        return await self._set_edge(
            "comment_like", CommentLike, {"comment_id": comment_id, "user_id": user_id}, liked
        )

    async def set_follow(self, follower_id: str, followee_id: str, following: bool) -> EdgeState:
        if follower_id == followee_id:
            raise SelfFollowNotAllowed()
        if following and await self.db.get(User, followee_id) is None:
            raise UserNotFound("The user to follow does not exist")
        return await self._set_edge(
            "follow", Follow, {"follower_id": follower_id, "followee_id": followee_id}, following
        )


def _match(model, keys: dict[str, Any]):
    return and_(*(getattr(model, column) == value for column, value in keys.items()))
