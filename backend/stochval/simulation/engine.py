"""Monte Carlo engine: fans scenario trials out over seeded chunks.

Trials are split into fixed-size chunks. Each chunk owns a random.Random
seeded from a numpy SeedSequence spawned off the run seed, so the chunk
layout (and therefore every draw) depends only on the seed, n and the
chunk size, never on how many workers ran it.
"""
from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future, ProcessPoolExecutor

import numpy as np

from stochval.config import settings
from stochval.exceptions import SimulationCancelled
from stochval.models.simulation import ValuationInputs
from stochval.simulation.scenario import ScenarioOutcome, run_scenario

logger = logging.getLogger(__name__)


def plan_chunks(n_scenarios: int, chunk_size: int) -> list[int]:
    """Trial counts per chunk, e.g. (10, 4) -> [4, 4, 2]."""
    full, rest = divmod(n_scenarios, chunk_size)
    sizes = [chunk_size] * full
    if rest:
        sizes.append(rest)
    return sizes


def spawn_seeds(seed: int | None, n_chunks: int) -> tuple[int, list[int]]:
    """Return (root entropy, one independent 64-bit seed per chunk).

    With seed=None the root entropy is drawn from the OS and returned so
    the run can be reproduced.
    """
    root = np.random.SeedSequence(seed)
    seeds = [int(child.generate_state(1, dtype=np.uint64)[0]) for child in root.spawn(n_chunks)]
    return int(root.entropy), seeds


def run_chunk(
    inputs: ValuationInputs,
    n_trials: int,
    seed: int,
    cancel_event: threading.Event | None = None,
) -> list[ScenarioOutcome]:
    """Run `n_trials` scenarios on a generator owned by this chunk."""
    rng = random.Random(seed)
    outcomes: list[ScenarioOutcome] = []
    for _ in range(n_trials):
        if cancel_event is not None and cancel_event.is_set():
            raise SimulationCancelled("Simulation cancelled")
        outcomes.append(run_scenario(inputs, rng))
    return outcomes


def run_trials(
    inputs: ValuationInputs,
    seed: int | None = None,
    chunk_size: int | None = None,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> tuple[int, list[ScenarioOutcome]]:
    """Run inputs.n_scenarios trials; return (seed used, outcomes in generation order).

    Any exception from a trial aborts the whole run.
    """
    chunk_size = chunk_size or settings.CHUNK_SIZE
    workers = workers or settings.WORKERS
    sizes = plan_chunks(inputs.n_scenarios, chunk_size)
    root_seed, chunk_seeds = spawn_seeds(seed, len(sizes))

    if workers <= 1 or len(sizes) == 1:
        outcomes: list[ScenarioOutcome] = []
        for size, chunk_seed in zip(sizes, chunk_seeds):
            outcomes.extend(run_chunk(inputs, size, chunk_seed, cancel_event))
        return root_seed, outcomes

    logger.info("Running %d chunks on %d worker processes", len(sizes), workers)
    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures: list[Future] = [
            executor.submit(run_chunk, inputs, size, chunk_seed)
            for size, chunk_seed in zip(sizes, chunk_seeds)
        ]
        outcomes = []
        try:
            for future in futures:
                if cancel_event is not None and cancel_event.is_set():
                    raise SimulationCancelled("Simulation cancelled")
                outcomes.extend(future.result())
        except Exception:
            for future in futures:
                future.cancel()
            raise
    return root_seed, outcomes
