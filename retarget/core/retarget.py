"""
Target recalculation and verification.

Some concepts::

    Difficulty = MaxTarget / Target
    Rate       = Capacity / Difficulty     (blocks per ms)
    Capacity   = solutions per ms produced by the network

The network capacity over the last ``N`` blocks is estimated from the
difficulties the blocks were mined at and the time it took to mine them:

    EstimatedCapacity = Sum(MaxTarget / Target[i]) / TotalTime

and the new target is the one that would bring the block rate back to the
desired rate:

    NewTarget = MaxTarget * DesiredRate / EstimatedCapacity

TotalTime is tempered DigiShield v3 style to trade response time for
stability, with every solve time clamped to ``[-FTL, 6 * DesiredBlockTime]``:

    TemperedTotalTime = 0.75 * N * DesiredBlockTime + 0.2523 * TotalTime

Every node must compute the same result, so everything is done with integers.
Targets are scaled by ``K = MaxTarget * 2**32`` before dividing so the floor
divisions keep enough precision, giving

    NewTarget = TemperedTotalTime * K // (DesiredBlockTime * Sum(K // Target[i]))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .difficulty import compact_to_target, target_to_compact
from .header import Header, StrippedHeader, WindowEntry

if TYPE_CHECKING:
    from ..config import ConsensusConfig

PRECISION_BITS = 32
# DigiShield v3 weights: 3/4 of the schedule, 0.2523 of the observed time.
TEMPER_SCHEDULE = (3, 4)
TEMPER_OBSERVED = (2523, 10_000)

log = logging.getLogger("retarget.difficulty")


class RetargetError(Exception):
    pass


class WindowSizeError(RetargetError):
    """The window does not hold exactly ``window_size + 1`` entries."""


class CapacityError(RetargetError):
    """The capacity estimate is zero, so the new target is undefined."""


class WrongTargetError(RetargetError):
    def __init__(self, claimed: int, expected: int):
        super().__init__(f"Wrong target {claimed:#010x}, expected {expected:#010x}")
        self.claimed = claimed
        self.expected = expected


@dataclass(frozen=True, slots=True)
class WrongTarget:
    claimed: int
    expected: int

    def to_error(self) -> WrongTargetError:
        return WrongTargetError(self.claimed, self.expected)


def scaling_constant(max_target: int) -> int:
    return max_target << PRECISION_BITS


def clamp_solve_time(solve_time: int, config: ConsensusConfig) -> int:
    return max(-config.future_time_limit, min(config.max_solve_time, solve_time))


def total_solve_time(window: Sequence[WindowEntry], config: ConsensusConfig) -> int:
    """Sum of the clamped intervals between consecutive entries, oldest first."""

    if len(window) < 2:
        raise WindowSizeError("At least two entries are needed to measure a solve time")
    total = 0
    for i in range(1, len(window)):
        total += clamp_solve_time(window[i].timestamp - window[i - 1].timestamp, config)
    return total


def sum_k_div_targets(window: Sequence[WindowEntry], k: int) -> int:
    # The oldest entry only anchors the first interval.
    total = 0
    for entry in window[1:]:
        target = compact_to_target(entry.target)
        if target <= 0:
            raise CapacityError(f"Window target {entry.target:#010x} decodes to zero")
        total += k // target
    return total


def tempered_solve_time(total: int, config: ConsensusConfig) -> int:
    schedule = TEMPER_SCHEDULE[0] * config.window_size * config.desired_block_time // TEMPER_SCHEDULE[1]
    return schedule + TEMPER_OBSERVED[0] * total // TEMPER_OBSERVED[1]


def check_window(window: Sequence[WindowEntry], config: ConsensusConfig) -> None:
    expected = config.window_size + 1
    if len(window) != expected:
        raise WindowSizeError(f"Retarget window holds {len(window)} entries, expected {expected}")


def uncapped_target(window: Sequence[WindowEntry], config: ConsensusConfig) -> int:
    """New target as an integer, before the network ceiling is applied.

    ``window`` must already be ordered oldest first.
    """

    check_window(window, config)
    k = scaling_constant(config.max_target)
    capacity = sum_k_div_targets(window, k)
    if capacity <= 0:
        raise CapacityError("Window targets exceed the scaling constant; check max_target_bits")
    solve_time = total_solve_time(window, config)
    tempered = tempered_solve_time(solve_time, config)
    new_target = tempered * k // (config.desired_block_time * capacity)
    log.debug(
        "Retarget window=%s..%s solve_time=%s tempered=%s capacity=%s target=%#x",
        window[0].timestamp,
        window[-1].timestamp,
        solve_time,
        tempered,
        capacity,
        new_target,
    )
    return new_target


def _capped_bits(window: Sequence[WindowEntry], config: ConsensusConfig) -> int:
    new_target = min(config.max_target, uncapped_target(window, config))
    # A heavily backdated window can temper to a negative time.
    return target_to_compact(max(0, new_target))


def sort_by_height(headers: Sequence[Header]) -> list[Header]:
    return sorted(headers, key=lambda header: header.height)


def recalculate(headers: Sequence[Header], config: ConsensusConfig) -> int:
    """Compact target for the block following ``headers``."""

    check_window(headers, config)
    return _capped_bits(sort_by_height(headers), config)


def recalculate_from_stripped(entries: Sequence[StrippedHeader], config: ConsensusConfig) -> int:
    """Same as :func:`recalculate` for ``(target, timestamp)`` entries, oldest first."""

    check_window(entries, config)
    return _capped_bits(entries, config)


def recalculate_window(window: Sequence[WindowEntry], config: ConsensusConfig) -> int:
    """Recalculate full headers by height, anything else as a stripped window."""

    if all(isinstance(entry, Header) for entry in window):
        return recalculate(window, config)  # type: ignore[arg-type]
    stripped = [entry.strip() if isinstance(entry, Header) else entry for entry in window]
    return recalculate_from_stripped(stripped, config)


def verify(claimed: int, window: Sequence[WindowEntry], config: ConsensusConfig) -> WrongTarget | None:
    expected = recalculate_window(window, config)
    if claimed == expected:
        return None
    log.info("Target mismatch claimed=%#010x expected=%#010x", claimed, expected)
    return WrongTarget(claimed=claimed, expected=expected)
