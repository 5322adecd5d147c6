import pytest

from aperiodic.codec import make_config
from verify_utils import _split, compute_distribution_stats, verify


def test_verify_exhaustive_single_process():
    result = verify(8, 4, processes=1)

    assert result["trials"] == 256
    assert result["violations"] == 0
    assert result["mismatches"] == 0
    assert result["successes"] == 256
    assert sum(result["distribution"].values()) == pytest.approx(1.0)
    assert result["distribution"].get(0, 0) > 0


def test_verify_sampled_is_reproducible():
    first = verify(20, 14, passes=40, processes=1, seed=3)
    second = verify(20, 14, passes=40, processes=1, seed=3)

    assert first["trials"] == 40
    assert first["mismatches"] == 0
    assert first["violations"] == 0
    assert first["distribution"] == second["distribution"]


def test_verify_no_passes():
    result = verify(8, 4, passes=0)
    assert result["trials"] == 0
    assert result["distribution"] == {}


def test_split_covers_every_payload():
    chunks = _split(range(10), 3)
    assert [list(c) for c in chunks] == [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]
    assert _split([1, 2], 4) == [[1], [2]]


def test_distribution_stats():
    config = make_config(8, 4)
    stats = compute_distribution_stats(config, verify(8, 4, processes=1))

    metrics = stats["metrics"]
    assert metrics["trials"] == 256
    assert metrics["rate"] == pytest.approx(8 / 9)
    assert metrics["expected_corrections"] >= 0
    assert 0 < metrics["untouched_share"] <= 1

    plot_df = stats["plot_df"]
    assert list(plot_df.columns) == ["corrections", "prob"]
    assert plot_df["prob"].sum() == pytest.approx(1.0)
    assert len(plot_df) == metrics["max_corrections"] - int(plot_df["corrections"].min()) + 1


def test_distribution_stats_rejects_empty():
    with pytest.raises(ValueError):
        compute_distribution_stats(make_config(8, 4), {"distribution": {}})
