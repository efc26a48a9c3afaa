# service/scheduler.py
from __future__ import annotations

import logging
import os
import time as _time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import pytz
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .logging_utils import write_activity_log, write_error_log

LOG = logging.getLogger(__name__)

JOB_ID = "phd_watch"
DEFAULT_CRON = "0 6 * * *"


# ---- Public controller ------------------------------------------------------


class SchedulerController:
    """
    A small façade around APScheduler so the CLI can manage lifecycle cleanly.
    """

    def __init__(self, scheduler: BackgroundScheduler) -> None:
        self._scheduler = scheduler

    def stop(self) -> None:
        """Promptly shut down APScheduler; an in-flight harvest is allowed to finish."""
        if self._scheduler.running:
            LOG.info("Shutting down scheduler...")
            self._scheduler.shutdown(wait=False)
        LOG.info("Scheduler shut down complete.")

    def next_run_time(self) -> datetime | None:
        job = self._scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job else None


# ---- Module API -------------------------------------------------------------


def start(
    run_job: Callable[..., Any],
    *,
    cron: str | None = None,
    tz_name: str | None = None,
    kwargs: Mapping[str, Any] | None = None,
) -> SchedulerController:
    """
    Schedule `run_job(**kwargs)` on a crontab expression and start the scheduler.

    cron defaults to env PHD_WATCH_CRON, else "0 6 * * *".
    tz_name defaults to env TZ, else UTC.
    """
    tz = resolve_timezone(tz_name)
    trigger = build_trigger(cron or os.getenv("PHD_WATCH_CRON") or DEFAULT_CRON, tz)

    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults={"coalesce": True, "max_instances": 1},
        executors={"default": ThreadPoolExecutor(1)},
        jobstores={"default": MemoryJobStore()},
    )
    scheduler.add_job(
        func=_job_wrapper,
        args=(run_job, dict(kwargs or {})),
        trigger=trigger,
        id=JOB_ID,
        replace_existing=True,
    )
    scheduler.start()

    job = scheduler.get_job(JOB_ID)
    LOG.info("Scheduler started; next_run_time=%s", getattr(job, "next_run_time", None))
    return SchedulerController(scheduler)


def resolve_timezone(tz_name: str | None = None):
    """
    APScheduler 3.x expects a pytz timezone. Accept an explicit name, env TZ,
    or default to UTC; unknown names fall back to UTC with a warning.
    """
    name = tz_name or os.getenv("TZ") or "UTC"
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        LOG.warning("Falling back to UTC timezone (invalid tz '%s')", name)
        return pytz.UTC


def build_trigger(cron: str, tz) -> CronTrigger:
    fields = (cron or "").strip().split()
    if len(fields) != 5:
        raise ValueError(f"cron string must have 5 fields (got {len(fields)}): {cron!r}")
    return CronTrigger.from_crontab(cron.strip(), timezone=tz)


# ---- Helpers ----------------------------------------------------------------


def _job_wrapper(run_job: Callable[..., Any], kwargs: dict[str, Any]) -> None:
    started = _time.monotonic()
    LOG.info("Job[%s] starting", JOB_ID)
    try:
        outcome = run_job(**kwargs)
    except Exception as e:
        LOG.exception("Job[%s] raised an exception.", JOB_ID)
        write_error_log({
            "ts": datetime.now().astimezone().isoformat(),
            "where": "scheduler",
            "job_id": JOB_ID,
            "error": repr(e),
            "duration_ms": int((_time.monotonic() - started) * 1000),
        })
        return

    duration = _time.monotonic() - started
    LOG.info("Job[%s] finished in %.3fs", JOB_ID, duration)
    write_activity_log({
        "ts": datetime.now().astimezone().isoformat(),
        "source": "scheduler",
        "event": "job_run",
        "job_id": JOB_ID,
        "ok": bool(getattr(outcome, "ok", False)),
        "listings": len(getattr(outcome, "listings", []) or []),
        "log_path": getattr(outcome, "log_path", None),
        "duration_ms": int(duration * 1000),
    })
