"""
HireSignal - Batch Runner
Runs one subject-processing callable across a pool with per-subject isolation.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, Set

from ..errors import DuplicateDecisionError
from ..models.records import BatchResult, OutcomeStatus, SubjectOutcome

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Processes every not-yet-done subject of a pool.

    Subjects share nothing mutable, so they run on a small thread pool.
    A failure in one subject is recorded as its outcome and never stops the
    others. Once the deadline passes (or ``cancel_event`` is set) subjects
    that have not started are recorded as cancelled; in-flight ones finish.
    """

    def __init__(self, max_workers: int = 3, deadline_seconds: float = 120.0):
        """
        Initialize batch runner.

        Args:
            max_workers: Concurrent subjects.
            deadline_seconds: Time after which no new subject is started.
        """
        self.max_workers = max_workers
        self.deadline_seconds = deadline_seconds

    def run(
        self,
        pool: Iterable[str],
        already_done: Set[str],
        process: Callable[[str], str],
        cancel_event: Optional[threading.Event] = None
    ) -> BatchResult:
        """
        Run ``process`` for every subject in ``pool`` minus ``already_done``.

        Args:
            pool: Candidate subject ids (duplicates ignored, order kept).
            already_done: Subjects that already have a current record.
            process: Runs the full chain for one subject and returns the record id.
            cancel_event: Optional external cancellation signal.

        Returns:
            BatchResult aggregated from one outcome per attempted subject.
        """
        subjects = list(dict.fromkeys(pool))
        to_process = [s for s in subjects if s not in already_done]
        skipped = len(subjects) - len(to_process)

        if not to_process:
            logger.info("Nothing to process: %d subjects already done", skipped)
            return BatchResult.from_outcomes([], already_done=skipped, pool_size=len(subjects))

        cancel_event = cancel_event or threading.Event()
        deadline_at = time.monotonic() + self.deadline_seconds

        def attempt(subject_id: str) -> SubjectOutcome:
            if cancel_event.is_set() or time.monotonic() >= deadline_at:
                cancel_event.set()
                return SubjectOutcome(subject_id, OutcomeStatus.CANCELLED)
            try:
                record_id = process(subject_id)
                return SubjectOutcome(subject_id, OutcomeStatus.PROCESSED, record_id=record_id)
            except DuplicateDecisionError as exc:
                logger.info("Skipping subject %s: %s", subject_id, exc.message)
                return SubjectOutcome(subject_id, OutcomeStatus.SKIPPED)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Subject %s failed", subject_id)
                return SubjectOutcome(subject_id, OutcomeStatus.ERROR, error=str(exc))

        logger.info("Processing %d subjects, skipping %d already done", len(to_process), skipped)
        workers = min(self.max_workers, len(to_process))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch") as executor:
            outcomes: List[SubjectOutcome] = list(executor.map(attempt, to_process))

        result = BatchResult.from_outcomes(outcomes, already_done=skipped, pool_size=len(subjects))
        logger.info(
            "Batch complete: processed=%d skipped=%d errors=%d cancelled=%d",
            result.processed, result.skipped, result.errors, result.cancelled
        )
        return result
