"""
Optimistic UI controller.

Toggles (like, comment like, follow) and deletions are applied to local state
immediately, then confirmed by the API. On failure, cancellation or timeout
the exact pre-change snapshot is restored; nothing is retried. Local state is a cache of server
truth, never authoritative: reconcile() overwrites it after a re-fetch.

While a request is in flight for an entity, further toggles on that entity
are ignored (not queued), so responses can never be applied out of order.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from photofeed.sdk.api_client import ApiRequestError, FeedApiClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutation = Callable[[bool], Awaitable[object]]


@dataclass(frozen=True)
class ToggleState:
    active: bool
    count: int


class OptimisticToggle:
    """A boolean flag and its derived counter, e.g. (is_liked, likes_count)."""

    def __init__(
        self,
        active: bool,
        count: int,
        mutate: Mutation,
        on_change: Optional[Callable[[ToggleState], None]] = None,
    ) -> None:
        self.state = ToggleState(active=active, count=count)
        self._mutate = mutate
        self._on_change = on_change
        self._in_flight = False
        self.last_error: Optional[ApiRequestError] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _apply(self, state: ToggleState) -> None:
        self.state = state
        if self._on_change:
            self._on_change(state)

    async def toggle(self) -> bool:
        """
        Flip the flag optimistically and confirm it with the server.

        Returns True when the server accepted the change; False when the
        toggle was ignored (already in flight) or rolled back.
        """
        if self._in_flight:
            return False
        self._in_flight = True

        snapshot = self.state
        target = not snapshot.active
        delta = 1 if target else -1
        self._apply(ToggleState(active=target, count=max(0, snapshot.count + delta)))

        try:
            await self._mutate(target)
        except ApiRequestError as exc:
            logger.warning("Optimistic toggle rolled back: %s", exc.message)
            self.last_error = exc
            self._apply(snapshot)
            return False
        except BaseException:
            # Cancelled or timed out: same rollback, then propagate
            self._apply(snapshot)
            raise
        finally:
            self._in_flight = False

        self.last_error = None
        return True

    def reconcile(self, active: bool, count: int) -> None:
        """Adopt server-computed truth after a re-fetch."""
        if self._in_flight:
            return
        self._apply(ToggleState(active=active, count=count))


def post_like_toggle(api: FeedApiClient, post: dict, **kwargs) -> OptimisticToggle:
    return OptimisticToggle(
        post["is_liked"],
        post["likes_count"],
        lambda liked: api.set_post_like(post["id"], liked),
        **kwargs,
    )


def comment_like_toggle(api: FeedApiClient, comment: dict, **kwargs) -> OptimisticToggle:
    return OptimisticToggle(
        comment["is_liked"],
        comment["likes_count"],
        lambda liked: api.set_comment_like(comment["id"], liked),
        **kwargs,
    )


def follow_toggle(api: FeedApiClient, profile: dict, **kwargs) -> OptimisticToggle:
    """Bound to a profile payload; the derived count is followers_count."""
    return OptimisticToggle(
        profile["is_following"],
        profile["stats"]["followers_count"],
        lambda following: api.set_follow(profile["user"]["id"], following),
        **kwargs,
    )


class OptimisticRemoval(Generic[T]):
    """
    A locally rendered list whose items can be deleted optimistically.

    The item disappears at once; if the delete fails it is put back at the
    index it was removed from.
    """

    def __init__(self, items: list[T], key: Callable[[T], str]) -> None:
        self.items = list(items)
        self._key = key
        self._in_flight: set[str] = set()
        self.last_error: Optional[ApiRequestError] = None

    def is_pending(self, item_id: str) -> bool:
        return item_id in self._in_flight

    async def remove(self, item_id: str, delete: Callable[[str], Awaitable[object]]) -> bool:
        if item_id in self._in_flight:
            return False
        index = next(
            (i for i, item in enumerate(self.items) if self._key(item) == item_id), None
        )
        if index is None:
            return False

        self._in_flight.add(item_id)
        item = self.items.pop(index)
        try:
            await delete(item_id)
        except ApiRequestError as exc:
            logger.warning("Optimistic delete of %s rolled back: %s", item_id, exc.message)
            self.last_error = exc
            self.items.insert(min(index, len(self.items)), item)
            return False
        except BaseException:
            self.items.insert(min(index, len(self.items)), item)
            raise
        finally:
            self._in_flight.discard(item_id)

        self.last_error = None
        return True

    def reconcile(self, items: list[T]) -> None:
        self.items = list(items)
