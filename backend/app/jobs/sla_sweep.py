"""
SLA Breach Sweep Job
====================

Runs one breach sweep against the configured database and exits.
Meant to be scheduled (cron, Kubernetes CronJob) every few minutes.

Usage:
    python -m app.jobs.sla_sweep
    sla-sweep --quiet
"""

import argparse
import sys

from app.core.logging import configure_logging, get_logger
from app.db.session import get_db_session
from app.repositories.sqlalchemy_store import SqlAlchemyUnitOfWork
from app.services.sla_service import SlaClock

logger = get_logger(__name__)


def run_sweep():
    session = get_db_session()
    try:
        clock = SlaClock(lambda: SqlAlchemyUnitOfWork(session))
        return clock.sweep_breaches()
    finally:
        session.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Flag SLA breaches on open incident cases")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print the summary line",
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        result = run_sweep()
    except Exception as e:
        logger.error("sla_sweep_job_failed", error=str(e), exc_info=True)
        return 1

    if not args.quiet:
        print(
            f"examined={result.examined} "
            f"response_breaches={result.response_breaches} "
            f"resolution_breaches={result.resolution_breaches}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
