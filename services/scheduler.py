"""Background site linter: re-lints the blog on a timer and keeps the last report."""

import logging
import sqlite3
import threading
from datetime import datetime

from config import SITE_DIR
from services.history import record_run
from services.lint import lint_site
from services.settings import load_settings

log = logging.getLogger(__name__)


class BackgroundLinter:
    def __init__(self):
        self._timer = None
        self._enabled = False
        self._interval = 30  # minutes
        self._site_dir = None
        self._last_run = None
        self._last_report = None
        self._running = False
        self._lock = threading.Lock()

    def configure(self, enabled: bool, interval_minutes: int, site_dir: str | None = None) -> None:
        with self._lock:
            self._enabled = enabled
            self._interval = max(1, interval_minutes)
            if site_dir:
                self._site_dir = site_dir
            self._cancel()
            if enabled:
                self._schedule()

    def _cancel(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        self._timer = threading.Timer(self._interval * 60, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self) -> dict | None:
        with self._lock:
            if self._running:
                return None
            self._running = True
        try:
            site_dir = self._site_dir or SITE_DIR
            report = lint_site(site_dir, settings=load_settings()["lint"])
            try:
                record_run(report)
            except sqlite3.Error as e:
                log.warning("Could not record lint run: %s", e)
            self._last_report = report
            self._last_run = datetime.now().isoformat()
            return report
        finally:
            with self._lock:
                self._running = False
                if self._enabled:
                    self._cancel()
                    self._schedule()

    def run_now(self) -> None:
        """Trigger an immediate lint run in a background thread."""
        threading.Thread(target=self._run, daemon=True).start()

    @property
    def last_report(self) -> dict | None:
        return self._last_report

    @property
    def status(self) -> dict:
        report = self._last_report
        return {
            "enabled": self._enabled,
            "interval_minutes": self._interval,
            "running": self._running,
            "last_run": self._last_run,
            "last_totals": (
                {k: report[k] for k in ("files", "errors", "warnings", "passed")}
                if report
                else None
            ),
        }


linter = BackgroundLinter()
