# verify.py

from verify_utils import compute_distribution_stats, render_distribution, verify
from aperiodic.codec import make_config
from aperiodic._utils.intmath import ceil_log2


def run_verification(n, p, passes=None, processes=None):
    config = make_config(n, p)
    print("============================================")
    print(
        f"VERIFY n={config.payload_bitsize}  l={config.window_bitsize}  "
        f"p={config.period_bound}  (ceil(log2(n))={ceil_log2(n)})"
    )
    print("============================================")

    result = verify(n, p, passes=passes, processes=processes)
    stats = compute_distribution_stats(config, result)

    for name, value in stats["metrics"].items():
        print(f"{name:>22}: {value}")

    return stats


if __name__ == "__main__":
    stats = run_verification(n=20, p=14)
    render_distribution(stats)
