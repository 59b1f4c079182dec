"""
Optimistic update helper: apply tentatively, commit remotely, revert on failure.

No retry and no queue: a failed commit restores the exact pre-change snapshot
and reports the error once.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T")


class RemoteCallError(Exception):
    """A store / network / identity-provider call failed. message is user-visible."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class OptimisticResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None


def run_optimistic(
    holder: Any,
    apply: Callable[[S], S],
    commit: Callable[[], T],
    reconcile: Callable[[S, T], S] | None = None,
) -> OptimisticResult[T]:
    """
    holder is any object with a mutable ``state`` attribute.

    apply(state) -> tentative state, shown immediately
    commit() -> remote result, may raise RemoteCallError
    reconcile(state, result) -> state after a successful commit (optional)
    """
    snapshot = holder.state
    holder.state = apply(snapshot)
    try:
        value = commit()
    except RemoteCallError as e:
        holder.state = snapshot
        logger.warning("Remote commit failed, local change reverted: %s", e.message)
        return OptimisticResult(ok=False, error=e.message)

    if reconcile is not None:
        holder.state = reconcile(holder.state, value)
    return OptimisticResult(ok=True, value=value)
