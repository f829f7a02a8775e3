"""In-process periodic expiration sweeper.

Usage:
    spotbook-sweeper            # sweep all tenants every SWEEP_INTERVAL_SECONDS
    spotbook-sweeper --once     # single pass, then exit

Deployments that trigger sweeps from Cloud Scheduler hit
POST /tasks/reservations/expire-sweep on the worker instead. Running both, or
several sweeper processes, is safe.
"""

from __future__ import annotations

import argparse
import signal
import threading
from typing import Callable

from spotbook.domain.expire_reservations import run_expiration_sweep_all
from spotbook.domain.models import SweepResult
from spotbook.infra.settings import get_settings
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

SweepFn = Callable[[], dict[str, SweepResult]]


class ExpirationScheduler:
    """Runs a sweep function every `interval_seconds` until stopped.

    A failing pass is logged and the loop keeps going; the next pass retries
    whatever was left behind. Without an explicit `sweep`, every active
    tenant is swept.
    """

    def __init__(self, interval_seconds: float, sweep: SweepFn | None = None) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self._sweep = sweep
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> dict[str, SweepResult] | None:
        """Run one pass. Never raises; a pass that crashed returns None."""
        sweep = self._sweep or run_expiration_sweep_all
        try:
            results = sweep()
        except Exception:
            logger.exception("expiration sweep pass failed")
            return None

        expired = sum(r.expired_count for r in results.values())
        failed = sum(r.failed_count for r in results.values())
        if expired or failed:
            logger.info(
                "expiration sweep pass",
                extra={
                    "extra_fields": safe_log_context(
                        tenants=len(results), expired_count=expired, failed_count=failed
                    )
                },
            )
        return results

    def run_forever(self) -> None:
        """Sweep immediately, then every interval, until stop() is called."""
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="expiration-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Ask the loop to exit and wait for the current pass to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Expire stale reservation holds.")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    scheduler = ExpirationScheduler(settings.sweep_interval_seconds)

    if args.once:
        results = scheduler.run_once()
        if results is None:
            return 1
        return 1 if any(r.failed_count for r in results.values()) else 0

    def _shutdown(signum, frame):
        logger.info(
            "sweeper stopping", extra={"extra_fields": safe_log_context(signal=signum)}
        )
        scheduler.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info(
        "sweeper started",
        extra={
            "extra_fields": safe_log_context(
                interval_seconds=settings.sweep_interval_seconds,
                batch_size=settings.sweep_batch_size,
            )
        },
    )
    scheduler.run_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
