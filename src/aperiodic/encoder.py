from typing import Generator, Iterator

import numpy as np

from ._utils.conversions import as_bits, int_to_bits
from ._utils.intmath import ceil_log2, check_parameters
from ._interface import (
    BitArray,
    Codeword,
    Correction,
    EncodingDivergedError,
    EscapeRecord,
)
from .period import compute_min_period


# Stream layout after k corrections:
#
#   [ rewritten payload ][ 1 ][ idx_1 | 0 ][ idx_2 | 0 ] ... [ idx_k | 0 ]
#
# (later corrections may overwrite or remove bits anywhere right of their own
# offset, terminator and earlier records included; decoding undoes them LIFO)


def default_max_corrections(n: int) -> int:
    return n * (n + 1)


class _EncoderState:
    def __init__(
        self,
        payload,
        window_bitsize: int,
        period_bound: int,
        max_corrections: int | None = None,
    ):
        bits = as_bits(payload)
        self.n = bits.size
        self.l = window_bitsize
        self.p = period_bound
        check_parameters(self.n, self.l, self.p)

        self.index_bitsize = ceil_log2(self.n)
        self.max_corrections = (
            default_max_corrections(self.n)
            if max_corrections is None
            else max_corrections
        )

        self.buffer: BitArray = np.append(bits, np.uint8(1))
        self.records: list[EscapeRecord] = []  # stack, top is the last element

    def offsets(self) -> range:
        # Buffer length is invariant, so the offset range never changes
        return range(self.n + 2 - self.l)

    def violation_at(self, i: int) -> int | None:
        period = compute_min_period(self.buffer[i : i + self.l])
        return period if period < self.p else None

    def correct(self, i: int, period: int) -> EscapeRecord:
        """
        Collapse the window at offset i with minimal period `period` < p.

        Only positions >= i + period are written, so the prefix s[i : i + period]
        that the decoder replays from is left intact, as is everything left of i.
        """
        assert 0 < period < self.p
        if len(self.records) >= self.max_corrections:
            raise EncodingDivergedError(
                f"more than {self.max_corrections} corrections "
                f"(n={self.n}, l={self.l}, p={self.p})"
            )

        l, p = self.l, self.p

        # Keep one p-bit prefix of the window, drop the l - p periodic tail
        head = self.buffer[: i + p].copy()

        # Marker: the period is the position of the last 1 in head[i + 1 : i + p]
        head[i + period] = 1
        head[i + period + 1 :] = 0

        self.buffer = np.concatenate(
            [
                head,
                self.buffer[i + l :],
                int_to_bits(i, self.index_bitsize),
                np.zeros(1, dtype=np.uint8),
            ]
        )
        if self.buffer.size != self.n + 1:
            raise EncodingDivergedError(
                f"correction changed stream length to {self.buffer.size}, "
                f"expected {self.n + 1}; l must equal p + ceil(log2(n)) + 1"
            )

        record = EscapeRecord(index=i, period=period)
        self.records.append(record)
        return record

    def scan(self) -> Iterator[EscapeRecord]:
        """One left-to-right pass; keeps going after each correction."""
        for i in self.offsets():
            period = self.violation_at(i)
            if period is not None:
                yield self.correct(i, period)


def iter_corrections(
    payload,
    window_bitsize: int,
    period_bound: int,
    max_corrections: int | None = None,
) -> Generator[Correction, None, Codeword]:
    """
    Step-wise encoder: yields a Correction after each rewrite, returns the
    final (n + 1)-bit stream once a full pass finds no violation.
    """
    state = _EncoderState(payload, window_bitsize, period_bound, max_corrections)

    while True:
        found = False
        for record in state.scan():
            found = True
            yield Correction(record=record, buffer=state.buffer.copy())
        if not found:
            return state.buffer


def encode(
    payload,
    window_bitsize: int,
    period_bound: int,
    max_corrections: int | None = None,
) -> Codeword:
    steps = iter_corrections(payload, window_bitsize, period_bound, max_corrections)
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return stop.value
