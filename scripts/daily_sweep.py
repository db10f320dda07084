"""Once-a-day maintenance, run by cron shortly after midnight.

1. Interrupt sessions of the previous day that never clocked out. Sessions on a
   shift that runs past midnight stay open until the shift has ended, so the
   day before is swept again to pick them up.
2. Resolve compensation periods whose end date has passed.

Both steps are idempotent, so a failed run can simply be repeated.
"""

from __future__ import annotations

import argparse
from datetime import date, timedelta

from timekeeping.common.datetime_utils import now_local, parse_iso_date
from timekeeping.container import build_container
from timekeeping.main import configure_logging, load_settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--date", help="Day to close (YYYY-MM-DD), defaults to yesterday")
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)

    today = now_local().date()
    work_date: date = parse_iso_date(args.date) if args.date else today - timedelta(days=1)

    closed = []
    for day in (work_date - timedelta(days=1), work_date):
        closed.extend(container.attendance_service.force_close_day(day))
    resolved = container.ledger.sweep_compensation_periods(today)
    print(f"OK: closed {len(closed)} session(s) for {work_date.isoformat()}, resolved {len(resolved)} period(s)")


if __name__ == "__main__":
    main()
