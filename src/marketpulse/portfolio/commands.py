"""Optimistic mutation commands with rollback."""

from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class Mutation(Generic[T]):
    """
    A local state change that can be undone.

    ``previous`` captures whatever the rollback needs (the old item, or None
    for an insert). ``apply`` performs the change and returns its result;
    ``rollback`` undoes it if it was applied. Both are idempotent.
    """

    def __init__(
        self,
        description: str,
        previous: Any,
        apply: Callable[[], T],
        rollback: Callable[[], None],
    ):
        self.description = description
        self.previous = previous
        self._apply = apply
        self._rollback = rollback
        self.applied = False
        self.rolled_back = False
        self.result: Optional[T] = None

    def apply(self) -> T:
        if not self.applied:
            self.result = self._apply()
            self.applied = True
        return self.result

    def rollback(self) -> None:
        if self.applied and not self.rolled_back:
            self._rollback()
            self.rolled_back = True

    def __repr__(self) -> str:
        return f"<Mutation({self.description!r}, applied={self.applied}, rolled_back={self.rolled_back})>"
