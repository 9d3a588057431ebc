"""ARQ worker configuration for IPN background jobs.

Schedule:
- Redelivery of retry-queued notifications: every minute
- Stale processing sweep: every 5 minutes
- Statistics rollup for today: hourly
- Statistics rollup for yesterday: daily at 00:15 UTC

Usage:
    arq rentdesk.workers.settings.WorkerSettings
"""
from arq import cron
from arq.connections import RedisSettings

from rentdesk.config import settings
from rentdesk.middleware.logging import setup_logging
from rentdesk.workers.ipn_redelivery import redeliver_notifications
from rentdesk.workers.ipn_statistics import rollup_today, rollup_yesterday
from rentdesk.workers.stale_sweeper import sweep_stale_processing


async def startup(ctx: dict) -> None:
    setup_logging()


class WorkerSettings:
    """ARQ worker settings."""

    functions = [
        redeliver_notifications,
        sweep_stale_processing,
        rollup_today,
        rollup_yesterday,
    ]

    cron_jobs = [
        cron(redeliver_notifications, second=0, timeout=300, unique=True),
        cron(sweep_stale_processing, minute=set(range(0, 60, 5)), second=30, timeout=120, unique=True),
        cron(rollup_today, minute=0, second=0, timeout=600),
        cron(rollup_yesterday, hour=0, minute=15, second=0, timeout=600),
    ]

    on_startup = startup

    redis_settings = RedisSettings.from_dsn(str(settings.arq_redis_url))

    # Job retention
    keep_result = 86400

    max_jobs = 10
    job_timeout = 600
