"""Replay a recorded capture through the monitor and print the final state.

Usage:
    python -m ordermonitor.replay capture.jsonl
    python -m ordermonitor.replay capture.jsonl --json
    ordermonitor-replay capture.jsonl --max-orders 20
"""

import argparse
import json
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path

from ordermonitor.clock import SystemClock
from ordermonitor.config import MonitorSettings
from ordermonitor.connection.replay_transport import ReplayResult, ReplayTransport
from ordermonitor.connection.scheduler import VirtualScheduler
from ordermonitor.client import OrderMonitor
from ordermonitor.reconciliation.state import MonitorSnapshot
from ordermonitor.utils.logging import add_context, configure_logging


def run_replay(path: Path, settings: MonitorSettings, clock=None) -> tuple[MonitorSnapshot, ReplayResult]:
    """Feed every frame of ``path`` through a fresh monitor."""
    transport = ReplayTransport(path)
    monitor = OrderMonitor(settings, transport=transport, scheduler=VirtualScheduler(), clock=clock or SystemClock())
    monitor.start()
    result = transport.replay()
    snapshot = monitor.snapshot
    monitor.stop()
    return snapshot, result


def snapshot_to_dict(snapshot: MonitorSnapshot) -> dict:
    return {
        "version": snapshot.version,
        "orders": [asdict(order) for order in snapshot.orders],
        "customers": [asdict(entry.customer) for entry in snapshot.customers.values()],
        "links": {str(order_id): link.customer_id for order_id, link in snapshot.links.items()},
        "vouchers": {str(order_id): asdict(voucher) for order_id, voucher in snapshot.vouchers.items()},
        "session_customer": asdict(snapshot.session.customer) if snapshot.session.customer else None,
        "pending_customers": [entry.customer.id for entry in snapshot.pending_customers],
        "voucher_catalogue": [asdict(voucher) for voucher in snapshot.voucher_catalogue],
        "total_active_vouchers": snapshot.total_active_vouchers,
    }


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    return str(value)


def format_snapshot(snapshot: MonitorSnapshot) -> str:
    lines = [f"{len(snapshot.orders)} orders, {snapshot.unique_customer_count} customers"]
    for order in snapshot.orders:
        voucher = snapshot.voucher_for(order.id)
        lines.append(
            f"  {order.code:<10} {order.status.name:<12} {order.totals.grand_total:>12,} "
            f"{order.customer_name}"
            + (f" [{voucher.code}]" if voucher and voucher.code else "")
        )
    if snapshot.session.customer is not None:
        lines.append(f"Session customer: {snapshot.session.customer.display_name}")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Replay an order monitor capture")
    parser.add_argument("capture", type=Path, help="JSON-lines file of {topic, payload} frames")
    parser.add_argument("--json", action="store_true", help="Print the final snapshot as JSON")
    parser.add_argument("--max-orders", type=int, help="Override the order table capacity")
    parser.add_argument("--log-dir", type=Path, help="Also write rotating log files here")
    args = parser.parse_args(argv)

    configure_logging(args.log_dir)
    add_context(capture=str(args.capture))

    if not args.capture.is_file():
        print(f"Capture not found: {args.capture}", file=sys.stderr)
        return 1

    overrides = {"max_orders": args.max_orders} if args.max_orders else {}
    snapshot, result = run_replay(args.capture, MonitorSettings.from_env(**overrides))

    if args.json:
        print(json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False, indent=2, default=_json_default))
    else:
        print(format_snapshot(snapshot))
        print(f"{result.delivered} frames delivered, {result.skipped} skipped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
