# accucb/bandit/errors.py
"""
Exception taxonomy for the ACC-UCB scheduler.

Only ``ConfigurationError`` (construction time) and ``SchedulerHalted`` are
ever raised out of the scheduler. The other classes describe recoverable
per-round conditions: the scheduler builds them, logs them, and records them
on the ``RoundResult`` instead of raising, so a single round can never abort
the whole run.
"""

from __future__ import annotations

from typing import Hashable


class BanditError(Exception):
    """Base class of every error raised by :mod:`accucb.bandit`."""


class ConfigurationError(BanditError, ValueError):
    """Invalid scheduler configuration (bad ``rho``, ``n_children < 2``, ...)."""


class EmptyCandidateSet(BanditError):
    """A round offered no arms, so nothing could be selected."""

    def __init__(self, round_index: int) -> None:
        super().__init__(f"round {round_index}: empty candidate set")
        self.round_index = round_index


class UnknownArmId(BanditError, KeyError):
    """A selected id does not belong to the round's candidate arms."""

    def __init__(self, arm_id: Hashable) -> None:
        super().__init__(arm_id)
        self.arm_id = arm_id

    def __str__(self) -> str:
        return f"unknown arm id: {self.arm_id!r}"


class UnknownNodeId(BanditError, KeyError):
    """A node id that is not in the partition arena."""

    def __init__(self, node_id: int) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"unknown node id: {self.node_id!r}"


class OracleFailure(BanditError):
    """The reward oracle could not produce a reward for one arm."""

    def __init__(self, arm_id: Hashable, reason: str) -> None:
        super().__init__(f"oracle failed for arm {arm_id!r}: {reason}")
        self.arm_id = arm_id
        self.reason = reason


class OracleTimeout(BanditError):
    """The reward oracle ran past its deadline for one arm."""

    def __init__(self, arm_id: Hashable, reward: float) -> None:
        super().__init__(f"oracle timed out for arm {arm_id!r}; using reward {reward}")
        self.arm_id = arm_id
        self.reward = reward


class SchedulerHalted(BanditError, RuntimeError):
    """``play_round`` was called after the round budget was spent."""
