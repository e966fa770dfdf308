"""Alert daemon: runs the alert check on a fixed wall-clock cadence (UTC).

Runs are aligned to interval boundaries counted from midnight UTC, so the
default 60 minute interval fires at the top of every hour.

Usage:
    python -m weatheralert daemon                  # hourly, top of hour
    python -m weatheralert daemon --interval 15    # every quarter hour
    python -m weatheralert daemon --stop           # stop running daemon
"""

import json
import logging
import os
import signal
import sys
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

from weatheralert.config.schema import AppConfig
from weatheralert.models.common import utc_now
from weatheralert.pipeline.alert_runner import AlertRunner, build_runner

logger = logging.getLogger(__name__)

PID_DIR = Path("data")
PID_FILE = PID_DIR / "daemon.pid"
STATE_FILE = PID_DIR / "daemon_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 100
STOP_WAIT_SECONDS = 60
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def next_run_at(now: datetime, interval_minutes: int) -> datetime:
    """Next interval boundary strictly after ``now``, aligned to midnight UTC."""
    now = now.astimezone(UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    step = interval_minutes * 60
    elapsed = (now - midnight).total_seconds()
    slots = int(elapsed // step) + 1
    candidate = midnight + timedelta(seconds=slots * step)
    return min(candidate, midnight + timedelta(days=1))


def _read_pid() -> int | None:
    """PID recorded in the PID file, or None when absent or unreadable."""
    try:
        return int(PID_FILE.read_text().strip())
    except FileNotFoundError:
        return None
    except ValueError:
        logger.warning("Ignoring corrupt PID file %s", PID_FILE)
        return None


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


@contextmanager
def _run_log(run_number: int) -> Iterator[Path]:
    """Mirror root logging into a dedicated file for one run."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    path = LOG_DIR / f"run_{stamp}_{run_number:05d}.log"

    handler = logging.FileHandler(path)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        yield path
    finally:
        root.removeHandler(handler)
        handler.close()


class AlertDaemon:
    """Drives an AlertRunner on schedule with signal handling and state reporting.

    The loop is sequential, so a slow run delays the next tick instead of
    overlapping it; ticks that were missed while a run was in flight are
    dropped.
    """

    def __init__(
        self,
        config: AppConfig,
        db_path: str = "data/weatheralert.db",
        interval_minutes: int | None = None,
        runner: AlertRunner | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.db_path = db_path
        self.interval_minutes = interval_minutes or config.scheduler.interval_minutes
        self.runner = runner or build_runner(config, db_path)
        self.clock = clock
        self.sleep = sleep
        self._running = False
        self._started_at: str | None = None
        self._next_run: str | None = None
        self._stats = {
            "total_runs": 0,
            "total_successes": 0,
            "total_failures": 0,
            "total_skipped": 0,
            "consecutive_failures": 0,
        }

    @property
    def total_runs(self) -> int:
        return self._stats["total_runs"]

    @property
    def total_failures(self) -> int:
        return self._stats["total_failures"]

    def start(self, run_now: bool = False) -> None:
        """Claim the PID file and tick until stopped."""
        self._check_not_already_running()
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))
        self._install_signal_handlers()
        self._running = True
        self._started_at = self.clock().isoformat()

        logger.info(
            "Daemon started, interval=%dmin pid=%d", self.interval_minutes, os.getpid()
        )
        print(f"🔄 Alert daemon started (pid {os.getpid()}, every {self.interval_minutes}min)")
        print(f"   Run logs: {LOG_DIR}/")
        print("   Stop with: python -m weatheralert daemon --stop")

        try:
            if run_now:
                self.run_once()
            self._loop()
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt, leaving schedule loop")
        finally:
            self._shutdown()

    def stop(self) -> None:
        self._running = False

    def _loop(self) -> None:
        while self._running:
            due = next_run_at(self.clock(), self.interval_minutes)
            self._next_run = due.isoformat()
            self._save_state()
            logger.info("Next alert run at %s", self._next_run)

            self._wait_until(due)
            if self._running:
                self.run_once()

    def _wait_until(self, due: datetime) -> None:
        # one second steps so a stop signal is noticed promptly
        while self._running:
            remaining = (due - self.clock()).total_seconds()
            if remaining <= 0:
                return
            self.sleep(min(1.0, remaining))

    def run_once(self) -> bool:
        """Execute a single run now. Returns True when it completed without errors."""
        self._stats["total_runs"] += 1
        number = self._stats["total_runs"]

        with _run_log(number):
            try:
                logger.info("Alert run #%d starting", number)
                summary = self.runner.run()
            except Exception:
                logger.exception("Alert run #%d crashed", number)
                ok = False
            else:
                if summary.skipped:
                    logger.warning("Alert run #%d skipped, previous run still active", number)
                    self._stats["total_skipped"] += 1
                    self._after_run()
                    return False
                ok = not summary.errors
                if ok:
                    logger.info(
                        "Alert run #%d OK: %d triggered, %d sent",
                        number, summary.alerts_triggered, summary.notifications_sent,
                    )
                else:
                    logger.error("Alert run #%d finished with errors: %s", number, summary.errors)

        self._count(ok)
        self._after_run()
        return ok

    def _count(self, ok: bool) -> None:
        if ok:
            self._stats["total_successes"] += 1
            self._stats["consecutive_failures"] = 0
        else:
            self._stats["total_failures"] += 1
            self._stats["consecutive_failures"] += 1

    def _after_run(self) -> None:
        self._rotate_logs()
        self._save_state()

    def _rotate_logs(self) -> None:
        """Delete all but the newest MAX_LOG_FILES run logs."""
        if not LOG_DIR.exists():
            return
        logs = sorted(LOG_DIR.glob("run_*.log"))
        for old in logs[:-MAX_LOG_FILES]:
            old.unlink(missing_ok=True)

    def _install_signal_handlers(self) -> None:
        def _handle(signum: int, frame: object) -> None:
            logger.info("Received %s, finishing current run then exiting",
                        signal.Signals(signum).name)
            self._running = False

        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, _handle)

    def _check_not_already_running(self) -> None:
        """Exit if another live daemon owns the PID file; clear a stale one."""
        pid = _read_pid()
        if pid is None:
            PID_FILE.unlink(missing_ok=True)
            return
        try:
            alive = _is_alive(pid)
        except PermissionError:
            print(f"❌ Cannot verify daemon pid {pid}, refusing to start")
            sys.exit(1)
        if alive:
            print(f"❌ Daemon already running (pid {pid}), stop it first:")
            print("   python -m weatheralert daemon --stop")
            sys.exit(1)
        logger.info("Removing stale PID file for pid %d", pid)
        PID_FILE.unlink(missing_ok=True)

    def _save_state(self) -> None:
        """Write the JSON state file read by ``daemon --status``."""
        state = {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "interval_minutes": self.interval_minutes,
            "next_run": self._next_run,
            **self._stats,
            "last_update": datetime.now(UTC).isoformat(),
        }
        PID_DIR.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(json.dumps(state, indent=2))

    def _shutdown(self) -> None:
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        s = self._stats
        logger.info(
            "Daemon stopped after %d runs (%d ok, %d failed, %d skipped)",
            s["total_runs"], s["total_successes"], s["total_failures"], s["total_skipped"],
        )
        print(
            f"⏹️  Daemon stopped: {s['total_runs']} runs "
            f"({s['total_successes']} ok, {s['total_failures']} failed)"
        )


def stop_daemon() -> int:
    """SIGTERM the running daemon, escalating to SIGKILL after a minute."""
    pid = _read_pid()
    if pid is None:
        print("No daemon running (no usable PID file)")
        PID_FILE.unlink(missing_ok=True)
        return 1

    if not _is_alive(pid):
        print(f"Daemon not running (stale pid {pid}), cleaning up")
        PID_FILE.unlink(missing_ok=True)
        STATE_FILE.unlink(missing_ok=True)
        return 0

    print(f"Stopping daemon (pid {pid})...")
    os.kill(pid, signal.SIGTERM)
    for _ in range(STOP_WAIT_SECONDS):
        time.sleep(1)
        if not _is_alive(pid):
            print("✅ Daemon stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"⚠️  Daemon ignored SIGTERM for {STOP_WAIT_SECONDS}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


def daemon_status() -> int:
    """Print daemon status from the state file."""
    if not STATE_FILE.exists():
        print("No daemon state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    pid = state.get("pid")
    try:
        running = _is_alive(int(pid))
    except (TypeError, ValueError, PermissionError):
        running = False

    print(f"{'🟢 Daemon running' if running else '🔴 Daemon stopped'}")
    rows = [
        ("PID", pid),
        ("Interval", f"{state.get('interval_minutes', '?')}min"),
        ("Started", state.get("started_at")),
        ("Next run", state.get("next_run")),
        ("Total runs", state.get("total_runs", 0)),
        ("Successes", state.get("total_successes", 0)),
        ("Failures", state.get("total_failures", 0)),
        ("Skipped", state.get("total_skipped", 0)),
        ("Consecutive failures", state.get("consecutive_failures", 0)),
        ("Last update", state.get("last_update")),
    ]
    for label, value in rows:
        print(f"  {label}: {'?' if value is None else value}")
    return 0
