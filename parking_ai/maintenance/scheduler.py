"""
Background maintenance

Periodic jobs (pattern pruning, cluster consolidation) each run on their own
daemon thread. Jobs must be idempotent: a failed run is logged and simply
retried on the next tick.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from parking_ai.utils.logging import get_logger


@dataclass
class MaintenanceJob:
    """A named action repeated every ``interval_seconds``"""
    name: str
    interval_seconds: float
    action: Callable[[], object]
    runs: int = 0
    failures: int = 0


class MaintenanceScheduler:
    """
    Run maintenance jobs on background threads

    Usage::

        scheduler = MaintenanceScheduler()
        scheduler.add_job("prune_patterns", 3600, engine.prune_patterns)
        scheduler.start()
        ...
        scheduler.stop()

    ``run_job`` executes a job synchronously on the calling thread, which is
    how tests drive maintenance deterministically.
    """

    def __init__(self):
        self._jobs: Dict[str, MaintenanceJob] = {}
        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def jobs(self) -> Dict[str, MaintenanceJob]:
        return dict(self._jobs)

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def add_job(
        self, name: str, interval_seconds: float, action: Callable[[], object]
    ) -> MaintenanceJob:
        if interval_seconds <= 0:
            raise ValueError(f"Interval for job {name!r} must be positive")
        if name in self._jobs:
            raise ValueError(f"Job {name!r} already registered")

        job = MaintenanceJob(name=name, interval_seconds=interval_seconds, action=action)
        self._jobs[name] = job
        return job

    def run_job(self, name: str) -> bool:
        """Run one job now. Returns False if it raised."""
        job = self._jobs.get(name)
        if job is None:
            raise KeyError(f"Unknown maintenance job: {name}")

        try:
            self.logger.debug("Running maintenance job", job=name)
            job.action()
        except Exception as error:
            job.failures += 1
            self.logger.error(
                "Maintenance job failed; will retry next tick",
                job=name,
                error=str(error),
                failures=job.failures,
            )
            return False

        job.runs += 1
        return True

    def start(self) -> None:
        """Start one daemon thread per registered job."""
        if self.running:
            self.logger.warning("Maintenance scheduler already running")
            return

        self._stop_event.clear()
        self._threads = []
        for job in self._jobs.values():
            thread = threading.Thread(
                target=self._run_periodic,
                args=(job,),
                name=f"parking-ai-{job.name}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

        self.logger.info(
            "Maintenance scheduler started",
            jobs={job.name: job.interval_seconds for job in self._jobs.values()},
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        self.logger.info("Maintenance scheduler stopped")

    def _run_periodic(self, job: MaintenanceJob) -> None:
        # wait() returns True once stop() is called
        while not self._stop_event.wait(job.interval_seconds):
            self.run_job(job.name)
