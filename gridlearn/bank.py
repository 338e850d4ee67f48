"""Bounded FIFO of pending steps for n-step returns."""

from __future__ import annotations

from collections import deque
from typing import Deque, Tuple

from .episode import Step
from .model import Action, State


class ReturnBank:
    """
    Holds the last ``capacity`` steps whose n-step return is still pending.

    Args:
        capacity: Maximum number of buffered steps (the n of n-step methods).

    Examples:
        >>> from gridlearn.model import Action, State
        >>> bank = ReturnBank(2)
        >>> s = State(0)
        >>> bank.push(Step(s, Action.UP, 1.0))
        >>> bank.push(Step(s, Action.UP, 2.0))
        >>> bank.pop_return(gamma=0.5)[2]
        2.0
        >>> len(bank)
        1
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._queue: Deque[Step] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def push(self, step: Step) -> None:
        """Enqueue a step. Overflowing the capacity is a programming error."""
        if len(self._queue) >= self.capacity:
            raise OverflowError(f"return bank is full ({self.capacity} steps)")
        self._queue.append(step)

    def partial_return(self, gamma: float) -> float:
        """Discounted sum ``sum_i gamma^i r_i`` over the buffered rewards."""
        return sum(gamma**i * step.reward for i, step in enumerate(self._queue))

    def pop_return(self, gamma: float) -> Tuple[State, Action, float]:
        """Compute the partial return, then dequeue the oldest step.

        Returns:
            Tuple of (state, action, G) for the oldest step.
        """
        if not self._queue:
            raise IndexError("pop from an empty return bank")
        g = self.partial_return(gamma)
        oldest = self._queue.popleft()
        return oldest.state, oldest.action, g
