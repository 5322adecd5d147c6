def ceil_log2(n: int) -> int:
    """
    Compute ceil(log2(n)) for n >= 1.

    Exact integer arithmetic; no floating-point logs.
    """
    if not isinstance(n, int):
        raise TypeError("n must be an int")
    if n < 1:
        raise ValueError("n must be >= 1")
    return (n - 1).bit_length()


def min_window_bitsize(n: int, p: int) -> int:
    """
    Window size l = p + ceil(log2(n)) + 1 for which a correction removes exactly
    as many bits as its escape record appends.
    """
    if p < 1:
        raise ValueError("p must be >= 1")
    return p + ceil_log2(n) + 1


def max_period_bound(n: int) -> int:
    """
    Largest period bound p whose derived window still fits in an n-bit payload.

    Raises ValueError if no p >= 1 fits.
    """
    p = n - ceil_log2(n) - 1
    if p < 1:
        raise ValueError(f"no period bound fits a {n}-bit payload")
    return p


def check_parameters(n: int, l: int, p: int):
    """Raise ValueError unless 1 <= p <= l <= n."""
    if not (1 <= p <= l <= n):
        raise ValueError(f"expected 1 <= p <= l <= n, got n={n}, l={l}, p={p}")
