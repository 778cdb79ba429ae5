#!/usr/bin/env python3
"""
StakeMesh Betting Core

Local demo: drives the core through the bounded worker pool the way the
transport layer would, then prints the ranking and metrics.

Usage:
    python -m stakemesh

    # Or with custom config
    STAKEMESH_TOP_K=5 python -m stakemesh --customers 50 --offer 888
"""

from __future__ import annotations

import argparse
import random
import sys
from typing import Optional, Sequence

from stakemesh.core.config import StakeMeshConfig
from stakemesh.observability.logging import LogLevel, setup_logging
from stakemesh.pipeline.backpressure import BoundedExecutor
from stakemesh.service import BettingService


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stakemesh",
        description="Run a local session/stake workload against the betting core.",
    )
    parser.add_argument("--customers", type=int, default=100, help="distinct customers")
    parser.add_argument("--stakes", type=int, default=10, help="stakes per customer")
    parser.add_argument("--offer", type=int, default=888, help="betting offer id")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument(
        "--metrics", action="store_true", help="print Prometheus metrics at the end",
    )
    return parser.parse_args(argv)


def _place_bets(
    service: BettingService,
    offer_id: int,
    customer_id: int,
    amounts: list[int],
) -> None:
    token = service.get_or_create_session(customer_id)
    for amount in amounts:
        # Every request re-authenticates, as the HTTP layer does.
        owner = service.validate_session(token)
        if owner is None:
            token = service.get_or_create_session(customer_id)
            owner = customer_id
        service.submit_stake(offer_id, owner, amount)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    config_result = StakeMeshConfig.from_env()
    if config_result.is_err():
        print(f"Configuration error: {config_result.error}", file=sys.stderr)
        return 1
    config = config_result.unwrap()

    validation = config.validate()
    if validation.is_err():
        print(f"Validation error: {validation.error}", file=sys.stderr)
        return 1

    setup_logging(
        LogLevel.from_name(config.observability.log_level),
        json_output=config.observability.log_json,
    )

    rng = random.Random(args.seed)
    workload = {
        customer_id: [rng.randint(1, 10_000) for _ in range(args.stakes)]
        for customer_id in range(1, args.customers + 1)
    }

    service = BettingService.from_config(config)
    caller_runs = (
        service.metrics.counter("stakemesh_executor_caller_runs_total")
        if service.metrics else None
    )

    with service, BoundedExecutor(config.executor, caller_runs) as pool:
        futures = [
            pool.submit(_place_bets, service, args.offer, customer_id, amounts)
            for customer_id, amounts in workload.items()
        ]
        for future in futures:
            future.result()
        pool_metrics = pool.metrics

    print(f"Offer {args.offer} high stakes:")
    print(service.render_high_stakes(args.offer) or "(none)")
    print(
        f"Sessions: {service.sessions.session_count} | "
        f"tasks accepted: {pool_metrics.accepted} | "
        f"caller-runs: {pool_metrics.caller_runs}"
    )

    if args.metrics and service.metrics:
        print(service.metrics.export_prometheus())

    return 0


if __name__ == "__main__":
    sys.exit(main())
