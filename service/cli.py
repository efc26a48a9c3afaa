# service/cli.py
"""
Command-line entrypoints for the PhD listings harvester.

Subcommands
-----------
run [--kwargs k=v ...] [--print-csv]
    - Executes one harvest via modules.phd_watch.run(...)
    - Exit 0 if listings and the run log were written, 1 otherwise

serve [--cron EXPR] [--timezone TZ] [--kwargs k=v ...]
    - Runs the harvest on a cron schedule via service.scheduler.start()
    - Registers signal handlers for graceful shutdown

show-config [--kwargs k=v ...]
    - Prints the resolved Settings as JSON; nonzero on ConfigError
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from modules.phd_watch import run as run_harvest
from modules.phd_watch.lib.config import ConfigError, Settings
from service import logging_utils as L
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except ValueError:
            out[k] = v
    return out


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


# ------------------------------ Subcommands ----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    run_id = uuid.uuid4().hex
    start_time = time.monotonic()
    kwargs = _parse_kv_pairs(args.kwargs or [])
    LOG.debug("Run phd_watch with kwargs=%s", kwargs)

    try:
        outcome = run_harvest(**kwargs)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "run_id": run_id,
            "kwargs": kwargs,
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return 1

    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_run",
        "run_id": run_id,
        "trigger_type": "adhoc",
        "ok": outcome.ok,
        "listings": len(outcome.listings),
        "csv_path": outcome.csv_path,
        "log_path": outcome.log_path,
        "kwargs": kwargs,
        "duration_ms": int((time.monotonic() - start_time) * 1000),
    })

    if not outcome.ok:
        print("FAILURE: no listings survived filtering; CSV not written.", file=sys.stderr)
        return 1
    if outcome.log_path is None:
        print("FAILURE: run log could not be written.", file=sys.stderr)
        return 1

    if args.print_csv and outcome.csv_path:
        print("\n----- CSV OUTPUT -----\n")
        with open(outcome.csv_path, encoding="utf-8") as f:
            print(f.read(), end="")
    print(f"SUCCESS: {len(outcome.listings)} listing(s) written to {outcome.csv_path}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """
    Run the harvest on a cron schedule until a termination signal is received.
    """
    kwargs = _parse_kv_pairs(args.kwargs or [])
    stop_event = threading.Event()
    controller = None

    def _graceful_shutdown(signum=None, frame=None):
        LOG.info("Signal %s received; initiating shutdown...", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _graceful_shutdown)

    try:
        controller = _scheduler.start(run_harvest, cron=args.cron, tz_name=args.timezone, kwargs=kwargs)
        L.write_activity_log({"ts": _now_iso(), "event": "serve_start", "next_run_time": str(controller.next_run_time())})

        # Main wait loop (respond quickly to signals)
        while not stop_event.is_set():
            time.sleep(0.3)

        controller.stop()
        L.write_activity_log({"ts": _now_iso(), "event": "serve_stop"})
        return 0
    except KeyboardInterrupt:
        if controller is not None:
            controller.stop()
        return 130
    except Exception as e:
        LOG.exception("Fatal error in serve: %s", e)
        if controller is not None:
            controller.stop()
        return 1


def cmd_show_config(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_parse_kv_pairs(args.kwargs or []))
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 1
    print(json.dumps(settings.as_dict(), indent=2, sort_keys=True))
    return 0


# ------------------------------- Argparse ------------------------------------
def _add_kwargs_arg(sp: argparse.ArgumentParser) -> None:
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Settings overrides (JSON values supported), e.g. max_pages=2 headless=false.",
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="phd-watch",
        description="Harvest PhD listings into a CSV file.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # run
    sp = sub.add_parser("run", help="Harvest once and write the CSV.")
    _add_kwargs_arg(sp)
    sp.add_argument("--print-csv", action="store_true", help="Print the written CSV to stdout.")
    sp.set_defaults(func=cmd_run)

    # serve
    sp = sub.add_parser("serve", help="Harvest on a cron schedule until stopped.")
    sp.add_argument("--cron", help="5-field crontab expression (default: $PHD_WATCH_CRON or '0 6 * * *').")
    sp.add_argument("--timezone", help="Scheduler timezone (default: $TZ or UTC).")
    _add_kwargs_arg(sp)
    sp.set_defaults(func=cmd_serve)

    # show-config
    sp = sub.add_parser("show-config", help="Print the resolved settings.")
    _add_kwargs_arg(sp)
    sp.set_defaults(func=cmd_show_config)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
