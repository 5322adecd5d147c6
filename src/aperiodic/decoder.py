from typing import Generator

import numpy as np

from ._utils.conversions import as_bits, bits_to_int
from ._utils.intmath import ceil_log2, check_parameters
from ._interface import (
    BitArray,
    Codeword,
    EscapeRecord,
    MalformedStreamError,
    Payload,
)


class _DecoderState:
    def __init__(
        self,
        codeword: Codeword,
        payload_bitsize: int,
        window_bitsize: int,
        period_bound: int,
        max_records: int | None = None,
    ):
        self.n = payload_bitsize
        self.l = window_bitsize
        self.p = period_bound
        check_parameters(self.n, self.l, self.p)

        bits = as_bits(codeword)
        if bits.size != self.n + 1:
            raise MalformedStreamError(
                f"expected {self.n + 1} bits, got {bits.size} bits"
            )

        self.index_bitsize = ceil_log2(self.n)
        self.max_records = self.n * (self.n + 1) if max_records is None else max_records
        self.undone = 0
        self.buffer: BitArray = bits

    def has_record(self) -> bool:
        return self.buffer[-1] == 0

    def pop_record(self) -> EscapeRecord:
        """Strip the top escape record and recover (index, period) from the marker."""
        if self.undone >= self.max_records:
            raise MalformedStreamError(f"more than {self.max_records} escape records")

        record_bitsize = self.index_bitsize + 1
        index = bits_to_int(self.buffer[-record_bitsize:-1])
        if index + self.l > self.n + 1:
            raise MalformedStreamError(
                f"record index {index} has no full {self.l}-bit window"
            )

        head = self.buffer[:-record_bitsize]
        if index + self.p > head.size:
            raise MalformedStreamError(
                f"record index {index} points past the {head.size}-bit body"
            )

        # Last 1 in head[index + 1 : index + p] marks the period
        j = index + self.p - 1
        while j > index and head[j] == 0:
            j -= 1
        if j == index:
            raise MalformedStreamError(f"no period marker for record at index {index}")

        self.buffer = head
        return EscapeRecord(index=index, period=j - index)

    def unwrap(self, record: EscapeRecord):
        """Re-expand the window collapsed by `record` by replaying its period."""
        i, period = record
        l, p = self.l, self.p

        restored = np.concatenate(
            [
                self.buffer[: i + p],
                np.zeros(l - p, dtype=np.uint8),
                self.buffer[i + p :],
            ]
        )
        if restored.size != self.n + 1:
            raise MalformedStreamError(
                f"unwrapped stream has {restored.size} bits, expected {self.n + 1}"
            )

        for k in range(i + period, i + l):
            restored[k] = restored[k - period]

        self.buffer = restored
        self.undone += 1

    def payload(self) -> Payload:
        return self.buffer[:-1].copy()


def iter_records(
    codeword: Codeword,
    payload_bitsize: int,
    window_bitsize: int,
    period_bound: int,
    max_records: int | None = None,
) -> Generator[EscapeRecord, None, Payload]:
    """
    Undo escape records from the end of the stream, most recent first.
    Yields each record once it has been undone, returns the payload.
    """
    state = _DecoderState(
        codeword, payload_bitsize, window_bitsize, period_bound, max_records
    )

    while state.has_record():
        record = state.pop_record()
        state.unwrap(record)
        yield record

    # Trailing 1 is the terminator appended before any record
    return state.payload()


def decode(
    codeword: Codeword,
    payload_bitsize: int,
    window_bitsize: int,
    period_bound: int,
    max_records: int | None = None,
) -> Payload:
    steps = iter_records(
        codeword, payload_bitsize, window_bitsize, period_bound, max_records
    )
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return stop.value
