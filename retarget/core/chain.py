"""
Height-indexed header chain that applies the retarget rules to new headers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import difficulty, retarget
from .header import Header

if TYPE_CHECKING:
    from ..config import ConsensusConfig


class ChainError(Exception):
    def __init__(self, message: str, *, claimed: int | None = None, expected: int | None = None):
        super().__init__(message)
        self.claimed = claimed
        self.expected = expected


class HeaderChain:
    def __init__(self, config: ConsensusConfig, genesis: Header):
        self.config = config
        self.log = logging.getLogger("retarget.chain")
        self._headers: list[Header] = [genesis]
        self.log.info("Header chain starts at height %s target=%#010x", genesis.height, genesis.target)

    def __len__(self) -> int:
        return len(self._headers)

    @property
    def tip(self) -> Header:
        return self._headers[-1]

    def headers(self) -> list[Header]:
        return list(self._headers)

    def get(self, height: int) -> Header | None:
        offset = height - self._headers[0].height
        if offset < 0 or offset >= len(self._headers):
            return None
        return self._headers[offset]

    def window_for(self, height: int) -> list[Header]:
        """The ``window_size + 1`` headers that set the target at ``height``."""

        size = self.config.window_size + 1
        start = height - size
        window = [self.get(h) for h in range(start, height)]
        if any(header is None for header in window):
            raise ChainError(f"Missing headers for retarget window at height {height}")
        return window  # type: ignore[return-value]

    def expected_target(self, height: int) -> int:
        parent = self.get(height - 1)
        if parent is None:
            raise ChainError(f"Unknown parent for height {height}")
        if height - self._headers[0].height <= self.config.window_size:
            return parent.target
        return retarget.recalculate(self.window_for(height), self.config)

    def add_header(self, header: Header) -> None:
        if header.height != self.tip.height + 1:
            raise ChainError(f"Header height {header.height} does not extend tip {self.tip.height}")
        try:
            target = difficulty.compact_to_target(header.target)
        except difficulty.DifficultyError as exc:
            raise ChainError(f"Invalid target {header.target:#010x}") from exc
        if target <= 0:
            raise ChainError(f"Header target {header.target:#010x} decodes to zero", claimed=header.target)
        if header.height - self._headers[0].height <= self.config.window_size:
            expected = self.tip.target
            if header.target != expected:
                raise ChainError("Unexpected target", claimed=header.target, expected=expected)
        else:
            mismatch = retarget.verify(header.target, self.window_for(header.height), self.config)
            if mismatch is not None:
                raise ChainError("Unexpected target", claimed=mismatch.claimed, expected=mismatch.expected)
        self._headers.append(header)
        self.log.debug("Connected header height=%s target=%#010x", header.height, header.target)
