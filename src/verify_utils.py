import multiprocessing as mp
import queue
import random
import traceback
from collections import defaultdict
from typing import Callable, Sequence

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from tqdm import tqdm

from aperiodic._interface import Config
from aperiodic._utils.conversions import int_to_bits
from aperiodic.codec import make_config
from aperiodic.decoder import decode
from aperiodic.encoder import iter_corrections
from aperiodic.period import satisfies_constraint


def _run_trials_chunk(
    config: Config,
    payloads: Sequence[int],
    progress_reporter: Callable[[int], None] | None = None,
    progress_step: int = 100,
):
    """Run encode -> check -> decode on a slice of payloads, optionally reporting progress."""
    n, l, p = config
    corrections_distribution = defaultdict(lambda: 0)
    violations = 0
    mismatches = 0

    processed = 0
    reported = 0
    step = max(1, progress_step)

    for value in payloads:
        processed += 1

        payload = int_to_bits(value, n)

        # Encode, counting corrections
        steps = iter_corrections(payload, l, p)
        corrections = 0
        while True:
            try:
                next(steps)
            except StopIteration as stop:
                encoded = stop.value
                break
            corrections += 1

        assert encoded.size == n + 1, "Encoded stream has invalid length"

        if not satisfies_constraint(encoded, l, p):
            violations += 1
        elif not np.array_equal(decode(encoded, n, l, p), payload):
            mismatches += 1
        else:
            corrections_distribution[corrections] += 1

        if progress_reporter and (processed - reported >= step):
            progress_reporter(processed - reported)
            reported = processed

    if progress_reporter and processed > reported:
        progress_reporter(processed - reported)

    return {
        "distribution_counts": dict(corrections_distribution),
        "violations": violations,
        "mismatches": mismatches,
        "trials": processed,
    }


def _worker_entry(
    config: Config,
    payloads: Sequence[int],
    progress_queue: mp.Queue,
    progress_step: int,
    result_queue: mp.Queue,
    error_queue: mp.Queue,
):
    def report(delta: int):
        progress_queue.put(delta)

    try:
        result = _run_trials_chunk(config, payloads, report, progress_step)
    except Exception:
        # Surface worker failures to the master so it can halt everything immediately.
        error_queue.put(traceback.format_exc())
        return

    progress_queue.put(None)
    result_queue.put(result)


def _finalize_results(worker_results: list[dict]):
    merged_distribution = defaultdict(int)
    violations = 0
    mismatches = 0
    trials = 0

    for res in worker_results:
        for k, v in res["distribution_counts"].items():
            merged_distribution[k] += v
        violations += res["violations"]
        mismatches += res["mismatches"]
        trials += res["trials"]

    if violations:
        print(f"{violations} CONSTRAINT VIOLATIONS!!!")
    if mismatches:
        print(f"{mismatches} MISMATCHES!!!")

    successes = sum(merged_distribution.values())
    if successes == 0:
        distribution = {}
    else:
        distribution = {k: v / successes for k, v in merged_distribution.items()}

    return {
        "distribution": distribution,
        "violations": violations,
        "mismatches": mismatches,
        "successes": successes,
        "trials": trials,
    }


def _split(payloads: Sequence[int], parts: int) -> list[Sequence[int]]:
    base, remainder = divmod(len(payloads), parts)
    chunks = []
    start = 0
    for i in range(parts):
        size = base + (1 if i < remainder else 0)
        if size > 0:
            chunks.append(payloads[start : start + size])
        start += size
    return chunks


def verify(
    n: int,
    p: int,
    passes: int | None = None,
    processes: int | None = None,
    progress_update: int = 100,
    seed: int | None = None,
):
    """
    Encode, check and decode payloads for the configuration (n, p).

    passes=None runs every one of the 2^n payloads, otherwise `passes`
    payloads are sampled uniformly (with `seed`).
    """
    config = make_config(n, p)

    if passes is None:
        payloads: Sequence[int] = range(1 << n)
    else:
        rng = random.Random(seed)
        payloads = [rng.randrange(1 << n) for _ in range(max(0, int(passes)))]

    total_passes = len(payloads)
    if total_passes == 0:
        return _finalize_results(
            [
                {
                    "distribution_counts": {},
                    "violations": 0,
                    "mismatches": 0,
                    "trials": 0,
                }
            ]
        )

    if processes is None:
        processes = min(mp.cpu_count() or 1, total_passes)
    processes = max(1, min(int(processes), total_passes))

    if processes == 1:
        with tqdm(total=total_passes, desc="verify") as pbar:
            result = _run_trials_chunk(config, payloads, pbar.update, progress_update)
        return _finalize_results([result])

    ctx = mp.get_context("spawn")
    progress_queue: mp.Queue = ctx.Queue()
    result_queue: mp.Queue = ctx.Queue()
    error_queue: mp.Queue = ctx.Queue()

    chunks = _split(payloads, processes)

    procs = []
    for chunk in chunks:
        proc = ctx.Process(
            target=_worker_entry,
            args=(
                config,
                chunk,
                progress_queue,
                progress_update,
                result_queue,
                error_queue,
            ),
        )
        proc.start()
        procs.append(proc)

    finished = 0
    worker_error = None
    with tqdm(total=total_passes, desc="verify") as pbar:
        while finished < len(chunks):
            if worker_error is None:
                try:
                    worker_error = error_queue.get_nowait()
                except queue.Empty:
                    worker_error = None

            if worker_error is not None:
                break

            try:
                msg = progress_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if msg is None:
                finished += 1
            else:
                pbar.update(int(msg))

    # Check for errors after the loop in case they arrived during shutdown.
    if worker_error is None:
        try:
            worker_error = error_queue.get_nowait()
        except queue.Empty:
            worker_error = None

    if worker_error is not None:
        print("Verification worker failed with an exception:")
        print(worker_error)
        for proc in procs:
            if proc.is_alive():
                proc.terminate()
        for proc in procs:
            proc.join()
        raise RuntimeError("Verification worker failed; see worker traceback above.")

    worker_results = [result_queue.get() for _ in chunks]
    for proc in procs:
        proc.join()

    return _finalize_results(worker_results)


def compute_distribution_stats(config: Config, verify_result: dict):
    """
    Take the corrections-per-payload distribution returned by verify() and
    return:
        - plot_df (corrections, prob), with empty buckets filled
        - metrics: expected corrections, share of untouched payloads, rate
    """
    n, l, p = config

    distribution = {int(k): v for k, v in verify_result.get("distribution", {}).items()}
    if not distribution:
        raise ValueError("Empty distribution provided")

    df = pd.DataFrame(list(distribution.items()), columns=["corrections", "prob"])
    df = df.astype({"corrections": "int64", "prob": float})
    df = df.sort_values("corrections").reset_index(drop=True)

    c_min = int(df["corrections"].min())
    c_max = int(df["corrections"].max())

    # Fill missing buckets
    full_idx = pd.Series(range(c_min, c_max + 1), name="corrections")
    df_full = pd.DataFrame({"corrections": full_idx.astype("int64")})
    df_full = df_full.merge(df, on="corrections", how="left").fillna(0)

    corrections = df["corrections"].to_numpy(dtype=float)
    probs = df["prob"].to_numpy(dtype=float)
    total = probs.sum()
    if abs(total - 1.0) > 1e-8:
        probs = probs / total
    expected_corrections = float(np.sum(corrections * probs))

    return {
        "plot_df": df_full[["corrections", "prob"]].copy(),
        "metrics": {
            "payload_bitsize": n,
            "window_bitsize": l,
            "period_bound": p,
            "rate": n / (n + 1),
            "trials": verify_result.get("trials", 0),
            "violations": verify_result.get("violations", 0),
            "mismatches": verify_result.get("mismatches", 0),
            "expected_corrections": expected_corrections,
            "max_corrections": c_max,
            "untouched_share": distribution.get(0, 0.0),  # payloads passed through as-is
        },
    }


def render_distribution(stats):
    plot_df = stats["plot_df"]
    if plot_df is None or plot_df.empty:
        print("Nothing to plot.")
        return

    metrics = stats["metrics"]
    expected = metrics["expected_corrections"]

    fig = go.Figure()

    fig.add_trace(
        go.Bar(
            x=plot_df["corrections"],
            y=plot_df["prob"],
            name="probability",
            marker_color="steelblue",
            opacity=0.6,
        )
    )

    # Vertical expected value line
    ymax = float(plot_df["prob"].max())

    fig.add_shape(
        type="line",
        x0=expected,
        x1=expected,
        y0=0,
        y1=ymax,
        line=dict(color="green", width=2, dash="dash"),
    )

    fig.update_layout(
        title=(
            f"Corrections per payload (n={metrics['payload_bitsize']}, "
            f"l={metrics['window_bitsize']}, p={metrics['period_bound']})"
        ),
        xaxis_title="corrections",
        yaxis_title="probability",
        template="plotly_white",
    )

    fig.show()
