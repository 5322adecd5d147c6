from ._utils.conversions import as_bits
from ._utils.intmath import max_period_bound, min_window_bitsize
from ._interface import Codeword, Config, Payload, Protocol
from .decoder import decode
from .encoder import encode


# Domain:
# redundancy: exactly 1 bit (n -> n + 1)
# constraint: every l-window of the codeword has minimal period >= p
# requires: l = p + ceil(log2(n)) + 1, 1 <= p <= l <= n


def make_config(
    payload_bitsize: int,
    period_bound: int,
    window_bitsize: int | None = None,
) -> Config:
    n, p = payload_bitsize, period_bound
    if n <= 0:
        raise ValueError("payload_bitsize must be > 0")
    if p <= 0:
        raise ValueError("period_bound must be > 0")

    l = min_window_bitsize(n, p)
    if window_bitsize is not None and window_bitsize != l:
        raise ValueError(
            f"window_bitsize must be p + ceil(log2(n)) + 1 = {l}, got {window_bitsize}"
        )
    if l > n:
        # raises on its own when no period bound fits n at all
        bound = max_period_bound(n)
        raise ValueError(
            f"window of {l} bits does not fit a {n}-bit payload "
            f"(max period_bound is {bound})"
        )

    return Config(payload_bitsize=n, window_bitsize=l, period_bound=p)


def create_protocol(config: Config) -> Protocol:
    n, l, p = config

    def encode_payload(payload: Payload) -> Codeword:
        bits = as_bits(payload)
        if bits.size != n:
            raise ValueError(f"Expected payload of {n} bits, got {bits.size} bits")
        return encode(bits, l, p)

    def decode_codeword(codeword: Codeword) -> Payload:
        return decode(codeword, n, l, p)

    return Protocol(
        encode=encode_payload,
        decode=decode_codeword,
    )