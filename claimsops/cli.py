#!/usr/bin/env python3
"""
Claims Ops CLI — fused metrics, early intervention queue, and API server.

USAGE:
  python -m claimsops.cli metrics                             # Fused metrics as JSON
  python -m claimsops.cli metrics --engine risk               # One engine's load state

  python -m claimsops.cli intervention                        # Top 25 candidates
  python -m claimsops.cli intervention --strategy LOR_CANDIDATE --state TEXAS --top 10

  python -m claimsops.cli serve                               # Start API server
  python -m claimsops.cli serve --port 8000
"""
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

from loguru import logger

from claimsops.analytics.common import sanitize_for_json
from claimsops.analytics.intervention import by_state, by_strategy, summarize_interventions
from claimsops.data.schemas import InterventionStrategy
from claimsops.data.store import ENGINES, DataStore


def _load_store() -> DataStore:
    return asyncio.run(DataStore().load())


def cmd_metrics(args):
    """Print fused metrics (or one engine) as JSON."""
    store = _load_store()
    state = store.state(args.engine)
    print(json.dumps(sanitize_for_json(state), indent=2))
    if state.error:
        logger.warning(f"[CLI] {args.engine}: {state.error}")


def cmd_intervention(args):
    """Print the ranked early-intervention queue."""
    store = _load_store()
    state = store.state("intervention")
    if state.data is None:
        logger.error(f"[CLI] Intervention unavailable: {state.error}")
        sys.exit(1)

    candidates = state.data
    if args.strategy:
        candidates = by_strategy(candidates, InterventionStrategy(args.strategy))
    if args.state:
        candidates = by_state(candidates, args.state)

    s = summarize_interventions(candidates)
    print("\n" + "=" * 70)
    print("  CLAIMS OPS — EARLY INTERVENTION QUEUE")
    print("=" * 70)
    print(f"  Candidates: {s.total_candidates:,}  |  Reserves: ${s.total_reserves:,.0f}  |  "
          f"Pilot: {s.pilot_count}  |  Expansion: {s.expansion_candidates}")
    print("  " + "  ".join(f"{k}: {v}" for k, v in s.by_strategy.items()))
    print()
    for i, c in enumerate(candidates[:args.top], 1):
        print(f"{i:<4}{c.claim_number:<16}{c.state[:14]:<16}{c.days_open:>5}d  "
              f"${c.reserves:>10,.0f}  {c.priority_score:>4}  {c.primary_strategy.value}")
        for reason in c.reasoning:
            print(f"        - {reason}")


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    logger.info(f"[CLI] Starting Claims Ops API on port {args.port}...")
    uvicorn.run("claimsops.main:app", host="0.0.0.0", port=args.port, reload=args.reload,
                timeout_keep_alive=65)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Claims Ops — claims operations metrics engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # metrics subcommand
    metrics_parser = subparsers.add_parser("metrics", help="Print fused metrics")
    metrics_parser.add_argument("--engine", choices=ENGINES, default="metrics", help="Engine (default: metrics)")
    metrics_parser.set_defaults(func=cmd_metrics)

    # intervention subcommand
    iv_parser = subparsers.add_parser("intervention", help="Print early-intervention queue")
    iv_parser.add_argument("--strategy", choices=[s.value for s in InterventionStrategy], help="Strategy filter")
    iv_parser.add_argument("--state", help="Accident state filter (e.g. TEXAS)")
    iv_parser.add_argument("--top", type=int, default=25, help="Rows to print (default 25)")
    iv_parser.set_defaults(func=cmd_intervention)

    # serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")), help="Port (default 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
