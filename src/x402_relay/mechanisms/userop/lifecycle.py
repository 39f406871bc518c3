"""
UserOperation lifecycle state machine
"""

import logging
from enum import Enum

from x402_relay.exceptions import InvalidOperationState

logger = logging.getLogger(__name__)


class OperationState(str, Enum):
    UNSIGNED = "unsigned"
    SPONSORED = "sponsored"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"


_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.UNSIGNED: frozenset({OperationState.SPONSORED, OperationState.SIGNED}),
    OperationState.SPONSORED: frozenset({OperationState.SIGNED}),
    OperationState.SIGNED: frozenset({OperationState.SUBMITTED}),
    OperationState.SUBMITTED: frozenset(
        {OperationState.CONFIRMED, OperationState.PENDING, OperationState.FAILED}
    ),
    OperationState.PENDING: frozenset({OperationState.CONFIRMED, OperationState.FAILED}),
    OperationState.CONFIRMED: frozenset(),
    OperationState.FAILED: frozenset(),
}


class OperationLifecycle:
    """Tracks one UserOperation through preparation, signing and inclusion.

    Only the transitions in ``_TRANSITIONS`` are legal; anything else raises
    InvalidOperationState and leaves the state untouched.
    """

    def __init__(self, state: OperationState = OperationState.UNSIGNED) -> None:
        self._state = state
        self._history: list[OperationState] = [state]

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def history(self) -> list[OperationState]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self._state]

    def can_transition(self, target: OperationState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: OperationState) -> OperationState:
        if not self.can_transition(target):
            raise InvalidOperationState(
                f"Illegal UserOperation transition {self._state.value} -> {target.value}"
            )
        logger.debug("UserOperation %s -> %s", self._state.value, target.value)
        self._state = target
        self._history.append(target)
        return target
