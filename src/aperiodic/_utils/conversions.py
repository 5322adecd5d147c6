import numpy as np

## ======================================================================================
## int <-> bits (LSB first)
## ======================================================================================


def bits_to_int(bits) -> int:
    """
    Pack bits into an integer.
    bits[0] is the least significant bit.
    """
    value = 0
    for j, bit in enumerate(bits):
        value |= (int(bit) & 1) << j
    return value


def int_to_bits(value: int, length: int) -> np.ndarray:
    """
    Unpack the low ``length`` bits of ``value``.
    bits[0] is the least significant bit. No range check.
    """
    if length <= 0:
        return np.zeros(0, dtype=np.uint8)
    bits = np.empty(length, dtype=np.uint8)
    for j in range(length):
        bits[j] = (value >> j) & 1
    return bits


## ======================================================================================
## Normalization
## ======================================================================================


def as_bits(data) -> np.ndarray:
    """
    Flatten any 0/1 sequence (list, bool array, ...) into a contiguous uint8 array.

    Raises ValueError on any value other than 0 or 1.
    """
    values = np.asarray(data).reshape(-1)
    if values.size and not np.all((values == 0) | (values == 1)):
        raise ValueError("bits must be 0 or 1")
    return np.ascontiguousarray(values.astype(np.uint8))
