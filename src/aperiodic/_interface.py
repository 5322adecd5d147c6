from typing import Callable, NamedTuple
from numpy.typing import NDArray
import numpy as np


BitArray = NDArray[np.uint8]

Payload = BitArray
Codeword = BitArray  # payload + terminator + escape records, always n + 1 bits


class EscapeRecord(NamedTuple):
    index: int  # window offset of the correction
    period: int  # minimal period of the collapsed window


class Correction(NamedTuple):
    record: EscapeRecord
    buffer: BitArray  # snapshot of the stream right after the correction


Encoder = Callable[[Payload], Codeword]
Decoder = Callable[[Codeword], Payload]


class Config(NamedTuple):
    payload_bitsize: int  # n
    window_bitsize: int  # l
    period_bound: int  # p


class Protocol(NamedTuple):
    encode: Encoder
    decode: Decoder


ProtocolFactory = Callable[[Config], Protocol]


## ======================================================================================
## Errors
## ======================================================================================


class EmptyInputError(ValueError):
    """Minimal period requested for an empty sequence."""


class EncodingDivergedError(RuntimeError):
    """Correction loop did not converge or broke the n + 1 length invariant."""


class MalformedStreamError(ValueError):
    """Stream was not produced by the encoder with matching (n, l, p)."""
