#!/usr/bin/env python3
"""Run a Monte Carlo DCF from a JSON request file and print a summary.

Usage:
    python scripts/run_simulation.py request.json
    python scripts/run_simulation.py request.json --n 50000 --seed 7 --workers 4
    python scripts/run_simulation.py request.json --out result.json

The request file has the same shape as the POST /api/valuation/simulate body.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from stochval.exceptions import SimulationValidationError  # noqa: E402
from stochval.models.simulation import SimulationRequest  # noqa: E402
from stochval.services.simulation_service import run_simulation  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def load_request(path: Path, overrides: dict) -> SimulationRequest:
    body = json.loads(path.read_text(encoding="utf-8"))
    body.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationRequest.model_validate(body)


def format_summary(result) -> str:
    ps = result.per_share_value
    lines = [
        f"Scenarios:          {result.n_scenarios:,} (seed {result.seed})",
        f"EV mean:            {result.enterprise_value.mean:,.2f}",
        f"Equity mean:        {result.equity_value.mean:,.2f}",
        f"Per share mean/std: {ps.mean:,.2f} / {ps.std:,.2f}",
        "Per share P5 / P25 / P50 / P75 / P95:",
        f"  {ps.p5:,.2f} / {ps.p25:,.2f} / {ps.p50:,.2f} / {ps.p75:,.2f} / {ps.p95:,.2f}",
        f"Terminal value share: {result.terminal_value_pct:.1%}",
    ]
    if result.base_case is not None:
        lines.append(
            f"Base case per share:  {result.base_case.per_share_value:,.2f} "
            f"(P(below) = {result.prob_below_base_case:.1%})"
        )
    if result.clamped_scenarios:
        lines.append(f"Clamped scenarios:    {result.clamped_scenarios:,}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Run a Monte Carlo DCF valuation")
    parser.add_argument("request", type=Path, help="Path to a JSON simulation request")
    parser.add_argument("--n", type=int, dest="n_scenarios", help="Override n_scenarios")
    parser.add_argument("--seed", type=int, help="Override the random seed")
    parser.add_argument("--workers", type=int, help="Worker processes (default from settings)")
    parser.add_argument("--out", type=Path, help="Write the full result JSON here")
    args = parser.parse_args()

    request = load_request(args.request, {"n_scenarios": args.n_scenarios, "seed": args.seed})
    try:
        result = run_simulation(request, workers=args.workers)
    except SimulationValidationError as e:
        logger.error("Invalid request: %s", e)
        sys.exit(2)

    print(format_summary(result))

    if args.out:
        args.out.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Wrote %s", args.out)


if __name__ == "__main__":
    main()
