"""
CueLedger CLI

Commands:
  serve        - Run the API server
  init-db      - Create the database schema
  stations     - List stations
  add-station  - Add a station
  credits      - Show outstanding credits
  settle       - Settle a credit
  report       - Show a revenue report
"""

import argparse
import sys

from .core.config import LedgerConfig
from .core.errors import LedgerError


def _store(args):
    from .persistence import open_store
    return open_store(args.database_url or LedgerConfig.from_env().database_url)


def cmd_serve(args):
    """Run the API server."""
    import uvicorn

    config = LedgerConfig.from_env()
    port = args.port or config.port
    host = args.host or "0.0.0.0"

    print(f"Starting CueLedger on {host}:{port}")

    uvicorn.run(
        "cueledger.api.server:app",
        host=host,
        port=port,
        reload=args.reload,
        workers=args.workers,
    )


def cmd_init_db(args):
    """Create the database schema."""
    from .persistence import get_database

    url = args.database_url or LedgerConfig.from_env().database_url
    get_database(url)
    print(f"Database ready: {url}")


def cmd_stations(args):
    """List stations."""
    from .core.stations import StationDirectory

    stations = StationDirectory(_store(args)).list_stations()
    if not stations:
        print("No stations")
        return

    for station in stations:
        print(f"{station.id}  {station.name:<24} {station.type.value:<9} "
              f"{station.status.value:<12} {station.hourly_rate:>8.0f}/h")


def cmd_add_station(args):
    """Add a station."""
    from .core.stations import StationDirectory

    station = StationDirectory(_store(args)).add_station(args.name, args.type, args.rate)
    print(f"Station added: {station.id}")


def cmd_credits(args):
    """Show outstanding credits."""
    from .core.credits import CreditLedger

    summary = CreditLedger(_store(args)).outstanding_summary(search=args.search)

    print("Outstanding Credits")
    print("=" * 40)
    for credit in summary.credits:
        print(f"{credit.credit_id}  {credit.customer_name:<20} {credit.amount:>8.0f}  "
              f"{credit.created_at.date()}")
    print(f"Total: {summary.total_outstanding:.0f} across {summary.count} credit(s)")


def cmd_settle(args):
    """Settle a credit."""
    from .core.credits import CreditLedger

    credit = CreditLedger(_store(args)).settle_credit(args.credit_id)
    print(f"Credit {credit.credit_id} settled: {credit.amount:.0f} from {credit.customer_name}")


def cmd_report(args):
    """Show a revenue report."""
    from .billing.reports import RevenueReporter

    report = RevenueReporter(_store(args)).revenue(args.period)

    print(f"Revenue Report ({report.period})")
    print("=" * 40)
    for bucket in report.buckets:
        print(f"{bucket.name:<8} revenue={bucket.revenue:>9.0f}  sessions={bucket.sessions:>4}  "
              f"billiard={bucket.billiard_revenue:.0f}  ps4={bucket.ps4_revenue:.0f}")
    print(f"Total revenue: {report.total_revenue:.0f}")
    print(f"Total sessions: {report.total_sessions}")
    print(f"Outstanding credits: {report.outstanding_credits:.0f}")


COMMANDS = {
    "serve": cmd_serve,
    "init-db": cmd_init_db,
    "stations": cmd_stations,
    "add-station": cmd_add_station,
    "credits": cmd_credits,
    "settle": cmd_settle,
    "report": cmd_report,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CueLedger - billiard shop session billing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--database-url", help="Overrides DATABASE_URL")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.add_argument("--workers", type=int, default=1)

    subparsers.add_parser("init-db", help="Create the database schema")
    subparsers.add_parser("stations", help="List stations")

    # add-station
    add_parser = subparsers.add_parser("add-station", help="Add a station")
    add_parser.add_argument("name", help="Station name")
    add_parser.add_argument("--type", required=True, choices=["billiard", "ps4"])
    add_parser.add_argument("--rate", type=float, required=True, help="Hourly rate")

    # credits
    credits_parser = subparsers.add_parser("credits", help="Show outstanding credits")
    credits_parser.add_argument("--search", help="Filter by customer name")

    # settle
    settle_parser = subparsers.add_parser("settle", help="Settle a credit")
    settle_parser.add_argument("credit_id", help="Credit ID")

    # report
    report_parser = subparsers.add_parser("report", help="Show revenue report")
    report_parser.add_argument("--period", default="daily", choices=["daily", "weekly", "monthly"])

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return

    try:
        command(args)
    except LedgerError as e:
        print(f"Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
