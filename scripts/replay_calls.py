"""
Replay a YAML list of host calls through the ledger and report per-caller state.

Calls file shape (either a bare list or under a "calls" key):

    calls:
      - {caller: alice, op: startSession, timestamp: 100}
      - {caller: alice, op: submitScore, value: 40, timestamp: 130}
      - {caller: alice, op: endSession, timestamp: 160}

Run with: python -m perf_ledger.scripts.replay_calls --calls calls.yaml
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from ..controllers.performance_ledger import LedgerConfig, load_config
from ..executors.call_gateway import CallContext, CallGateway
from ..utils.errors import LedgerError


def configure_logging(config: LedgerConfig) -> None:
    logger.remove()
    logger.add(sys.stderr, level=config.log_level.upper())
    if not config.log_dir:
        return
    try:
        logs_dir = Path(config.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_path = logs_dir / "ledger.log"
        logger.add(
            str(log_path),
            rotation="10 MB",
            retention="10 days",
            compression="zip",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            level="DEBUG",
        )
        logger.info("File logging enabled: {}", log_path)
    except OSError as e:
        logger.warning("Failed to configure file logging: {}", e)


def load_calls(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("calls") or []
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of calls in {path}")
    return data


def replay(gateway: CallGateway, calls: List[Any]) -> Dict[str, int]:
    """Apply calls in order. Rejected calls are logged and counted, never fatal."""
    applied = 0
    rejected = 0
    for i, raw in enumerate(calls):
        if not isinstance(raw, dict):
            rejected += 1
            logger.warning("Call #{} skipped: expected a mapping, got {!r}", i, raw)
            continue
        op = str(raw.get("op", ""))
        try:
            # Field types are left to CallContext validation
            ctx = CallContext(
                caller=raw.get("caller"),
                value=raw.get("value", 0),
                timestamp=raw.get("timestamp"),
            )
            gateway.invoke(op, ctx)
            applied += 1
        except (LedgerError, ValidationError) as e:
            rejected += 1
            logger.warning("Call #{} {} rejected: {}", i, op, e)
    return {"applied": applied, "rejected": rejected}


def report(gateway: CallGateway) -> None:
    ledger = gateway.ledger
    for identity in ledger.store:
        summary = ledger.get_summary(identity)
        logger.info(
            "Summary {}: {} avgScore={} activeSessionStart={}",
            identity,
            summary.to_dict(),
            ledger.get_average_submitted_score(identity),
            ledger.get_active_session_start(identity),
        )
    logger.info("Held balance: {}", gateway.held_balance)


def main(argv: Optional[List[str]] = None) -> None:
    # Load environment variables from .env if present
    load_dotenv()
    parser = argparse.ArgumentParser()
    parser.add_argument("--calls", type=str, required=True, help="Path to YAML calls file")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML ledger config")
    parser.add_argument("--events-out", type=str, default=None, help="Write emitted events as JSON lines")
    args = parser.parse_args(argv)

    calls_path = Path(args.calls)
    if not calls_path.exists():
        raise SystemExit(f"Calls file not found: {calls_path}")
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        raise SystemExit(str(e))
    configure_logging(config)

    gateway = CallGateway(config)
    gateway.ledger.start()
    try:
        counts = replay(gateway, load_calls(calls_path))
        logger.info("Replay finished | applied={} rejected={}", counts["applied"], counts["rejected"])
        report(gateway)
        if args.events_out and gateway.ledger.event_log is not None:
            gateway.ledger.event_log.to_jsonl(args.events_out)
    finally:
        gateway.ledger.stop()


if __name__ == "__main__":
    main()
