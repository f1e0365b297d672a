"""
CorrTrack Update Benchmarks
===========================

Compares an incremental single-element update against a full recomputation
of the same correlation functions, over a range of grid sizes.

Usage:
    python scripts/benchmark.py
    python scripts/benchmark.py --sizes 100 200 400 --length 32 --updates 500
"""

import argparse
import time
from typing import Any, Dict, List

import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from corrtrack import CorrelationTracker, DescriptorKind, TrackedData, directional

# =============================================================================
# Benchmark Configuration
# =============================================================================

DEFAULT_SIZES = [64, 128, 256, 512]
DEFAULT_LENGTH = 32
DEFAULT_UPDATES = 200
FULL_REPEATS = 3
SEED = 348


def tracking_for(kinds: List[str]) -> List[TrackedData]:
    return [TrackedData(kind, phase) for kind in kinds for phase in (0, 1)]


def time_full(system: np.ndarray, tracking: List[TrackedData], length: int, periodic: bool) -> float:
    """Average seconds for one from-scratch computation of every tracked function."""
    start = time.perf_counter()
    for _ in range(FULL_REPEATS):
        for data in tracking:
            directional.correlation(data.kind, system, data.phase, length=length, periodic=periodic)
    return (time.perf_counter() - start) / FULL_REPEATS


def time_incremental(tracker: CorrelationTracker, updates: int, rng: np.random.Generator) -> Dict[str, float]:
    """Average seconds and element reads per tracked update."""
    coords = [tuple(int(i) for i in rng.integers(0, n, updates)) for n in tracker.shape]
    coords = list(zip(*coords))
    reads = tracker.stats()["total_reads"]

    start = time.perf_counter()
    for idx in coords:
        tracker[idx] = 1 - tracker[idx]
    elapsed = time.perf_counter() - start

    return {
        "seconds": elapsed / updates,
        "reads": (tracker.stats()["total_reads"] - reads) / updates,
    }


class UpdateBenchmark:
    """Rich-formatted comparison of incremental and full recomputation."""

    def __init__(self, sizes: List[int], length: int, updates: int, kinds: List[str], periodic: bool):
        self.console = Console()
        self.sizes = sizes
        self.length = length
        self.updates = updates
        self.tracking = tracking_for(kinds)
        self.periodic = periodic
        self.results: List[Dict[str, Any]] = []

    def run(self) -> None:
        self._display_header()
        rng = np.random.default_rng(SEED)

        for n in self.sizes:
            self.console.print(f"[yellow]Running {n}x{n}...[/yellow]")
            system = rng.integers(0, 2, (n, n))

            start = time.perf_counter()
            tracker = CorrelationTracker(
                system, self.tracking, length=self.length, periodic=self.periodic
            )
            setup = time.perf_counter() - start

            full = time_full(system, self.tracking, tracker.tracked_length, self.periodic)
            incremental = time_incremental(tracker, self.updates, rng)
            self.results.append(
                {
                    "size": n,
                    "length": tracker.tracked_length,
                    "setup": setup,
                    "full": full,
                    "update": incremental["seconds"],
                    "reads": incremental["reads"],
                }
            )
            self.console.print(
                f"[green]✓[/green] {n}x{n}: {incremental['seconds'] * 1e6:,.0f}μs per update, "
                f"{full * 1e3:,.1f}ms per recomputation"
            )

        self._display_results()

    def _display_header(self) -> None:
        kinds = ", ".join(sorted({d.kind.value for d in self.tracking}))
        self.console.print(
            Panel(
                f"Tracked: {kinds} for phases 0 and 1\n"
                f"Periodic: {self.periodic}, updates per size: {self.updates}",
                title="CorrTrack Update Benchmark",
                border_style="blue",
            )
        )
        self.console.print()

    def _display_results(self) -> None:
        table = Table(title="Incremental update vs full recomputation")
        table.add_column("Grid", style="cyan", no_wrap=True)
        table.add_column("Lags", justify="right")
        table.add_column("Setup", justify="right")
        table.add_column("Full pass", justify="right")
        table.add_column("Update", style="green", justify="right")
        table.add_column("Reads/update", justify="right")
        table.add_column("Speedup", style="magenta", justify="right")

        for result in self.results:
            speedup = result["full"] / result["update"] if result["update"] > 0 else float("inf")
            table.add_row(
                f"{result['size']}x{result['size']}",
                str(result["length"]),
                f"{result['setup'] * 1e3:,.1f}ms",
                f"{result['full'] * 1e3:,.1f}ms",
                f"{result['update'] * 1e6:,.1f}μs",
                f"{result['reads']:.1f}",
                f"{speedup:,.0f}x",
            )

        self.console.print()
        self.console.print(table)


def main():
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="CorrTrack update benchmarks")
    parser.add_argument("--sizes", type=int, nargs="+", default=DEFAULT_SIZES)
    parser.add_argument("--length", type=int, default=DEFAULT_LENGTH)
    parser.add_argument("--updates", type=int, default=DEFAULT_UPDATES)
    parser.add_argument(
        "--kinds",
        nargs="+",
        default=[kind.value for kind in DescriptorKind],
        help="Correlation functions to track (s2, l2, surfsurf, surfvoid)",
    )
    parser.add_argument("--periodic", action="store_true")
    args = parser.parse_args()

    UpdateBenchmark(args.sizes, args.length, args.updates, args.kinds, args.periodic).run()


if __name__ == "__main__":
    main()
