from itertools import product

import numpy as np
import pytest

from aperiodic._interface import EmptyInputError
from aperiodic.period import (
    compute_min_period,
    compute_periods,
    compute_z,
    compute_z_naive,
    satisfies_constraint,
    window_min_periods,
)


def _periods_by_definition(s):
    n = len(s)
    return {q for q in range(1, n + 1) if all(s[i] == s[i + q] for i in range(n - q))}


def test_alternating_sequence():
    s = [1, 0, 1, 0, 1, 0]
    assert compute_min_period(s) == 2
    assert compute_periods(s) == {2, 4, 6}


def test_known_z_values():
    np.testing.assert_array_equal(compute_z([1, 1, 0, 1, 1, 0]), [6, 1, 0, 3, 1, 0])
    assert compute_periods([1, 1, 0, 1, 1, 0]) == {3, 6}
    assert compute_min_period([1, 1, 0, 1, 1, 0]) == 3


def test_constant_and_aperiodic():
    assert compute_min_period([0] * 9) == 1
    assert compute_periods([0] * 4) == {1, 2, 3, 4}
    assert compute_min_period([1, 1, 0, 1, 0, 0, 0, 0]) == 8
    assert compute_min_period([1, 0, 0, 0]) == 4
    assert compute_min_period([1]) == 1


@pytest.mark.parametrize("length", [1, 2, 5, 10])
def test_linear_z_matches_naive(length):
    for bits in product([0, 1], repeat=length):
        np.testing.assert_array_equal(compute_z(bits), compute_z_naive(bits))


def test_periods_match_definition():
    for bits in product([0, 1], repeat=9):
        expected = _periods_by_definition(bits)
        assert compute_periods(bits) == expected
        assert compute_min_period(bits) == min(expected)


def test_empty_input():
    assert compute_z([]).size == 0
    assert compute_periods([]) == set()
    with pytest.raises(EmptyInputError):
        compute_min_period([])


def test_window_min_periods():
    s = [0, 0, 0, 0, 1, 0, 1, 0]
    periods = window_min_periods(s, 4)
    np.testing.assert_array_equal(
        periods,
        [compute_min_period(s[i : i + 4]) for i in range(len(s) - 3)],
    )
    np.testing.assert_array_equal(periods, [1, 4, 3, 2, 2])
    assert window_min_periods(s, 9).size == 0


def test_satisfies_constraint():
    s = [0, 0, 0, 0, 1, 0, 1, 0]
    assert satisfies_constraint(s, 4, 1)
    assert not satisfies_constraint(s, 4, 2)
    assert satisfies_constraint([1, 1, 0, 1, 0, 0, 0, 0, 1], 8, 4)
    with pytest.raises(ValueError):
        window_min_periods(s, 0)
