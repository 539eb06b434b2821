#!/usr/bin/env python3
"""
Print the outstanding balances report.

Reads either the local record mirror (``--database-url``) or a JSON
snapshot exported from the backend (``--snapshot``) holding ``projects``
and ``invoices`` arrays.

Usage:
    python3 scripts/outstanding_balances.py --snapshot export.json
    python3 scripts/outstanding_balances.py --database-url sqlite:///mirror.db --top 5
    python3 scripts/outstanding_balances.py --snapshot export.json --format json
"""

import argparse
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fieldops_config import get_active_config  # noqa: E402
from fieldops_engines.outstanding import OutstandingBalanceReport  # noqa: E402
from fieldops_kernel.domain.records import InvoiceRecord, ProjectRecord  # noqa: E402
from fieldops_kernel.exceptions import FieldOpsError  # noqa: E402
from fieldops_kernel.logging_config import configure_logging, get_logger  # noqa: E402
from fieldops_services.outstanding_balance_service import (  # noqa: E402
    OutstandingBalanceService,
    OutstandingBalanceView,
)

logger = get_logger("scripts.outstanding_balances")


def fmt_amount(v) -> str:
    """Format amount for display (e.g. $1,234.50)."""
    d = Decimal(str(v))
    return f"${d:,.2f}"


def load_snapshot(path: Path) -> tuple[list[ProjectRecord], list[InvoiceRecord]]:
    """Parse a JSON export with ``projects`` and ``invoices`` arrays."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: snapshot must be a JSON object")
    projects = [ProjectRecord.from_mapping(p) for p in data.get("projects") or []]
    invoices = [InvoiceRecord.from_mapping(i) for i in data.get("invoices") or []]
    return projects, invoices


def render_text(report: OutstandingBalanceReport) -> str:
    if report.is_empty:
        return "No outstanding balances"

    noun = "project" if report.project_count == 1 else "projects"
    lines = [
        f"Total Outstanding: {fmt_amount(report.total)} {report.currency}"
        f" ({report.project_count} {noun})",
        "",
    ]
    for item in report.items:
        project = item.project
        label = f"#{project.project_number or '-'} - {project.title or '(untitled)'}"
        status = project.financial_status or "Awaiting Payment"
        badge = "" if item.has_invoices else "  [No Invoice]"
        lines.append(f"  {label:<48} {fmt_amount(item.outstanding_balance):>14}")
        lines.append(f"      {project.customer_name or ''}  {status}{badge}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Outstanding balances on completed projects")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--snapshot", type=Path, help="JSON export with projects and invoices")
    source.add_argument("--database-url", help="SQLAlchemy URL of the record mirror")
    parser.add_argument("--config", type=Path, help="YAML config (default: packaged defaults)")
    parser.add_argument("--top", type=int, help="Only the N largest balances")
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument("--verbose", action="store_true", help="Structured logs to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = get_active_config(args.config)

        if args.snapshot is not None:
            projects, invoices = load_snapshot(args.snapshot)
            view = OutstandingBalanceView(config)
            view.set_projects(projects)
            view.set_invoices(invoices)
            report = view.require_report()
        else:
            from fieldops_kernel.db.engine import init_engine_from_url, session_scope

            init_engine_from_url(args.database_url)
            with session_scope() as session:
                report = OutstandingBalanceService(session, config).load_report()

        if args.top is not None:
            report = report.top(args.top)
    except (FieldOpsError, OSError, ValueError) as exc:
        logger.error("outstanding_balances_failed", exc_info=True)
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(render_text(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
