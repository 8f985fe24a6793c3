"""
HireSignal - Signal Collector
Pulls a subject's signals from every source and normalizes them into one bundle.
"""

import logging
from typing import Dict, Any, List, Optional

from ..errors import NotFoundError
from ..models.signals import (
    CandidateProfile,
    CandidateSignalBundle,
    FitSignal,
    InterviewSignal,
    JobContext,
    ShortlistSignal,
    WarmupSignal,
)
from ..store.repositories import SignalRepository

logger = logging.getLogger(__name__)

MAX_PRIOR_INTERVIEWS = 3
MAX_WARMUPS = 5
DEFAULT_SENIORITY = "mid"

# Checked in order; first keyword hit wins.
DEPARTMENT_KEYWORDS = [
    (("engineer", "developer", "software"), "Engineering"),
    (("product",), "Product"),
    (("design",), "Design"),
    (("sales",), "Sales"),
    (("market",), "Marketing"),
    (("hr", "people"), "HR/People"),
    (("finance",), "Finance"),
    (("customer", "success"), "Customer Success"),
    (("lead", "manager", "director", "vp", "chief"), "Leadership"),
]

PROFILE_CORE_FIELDS = {"user_id", "id", "headline", "years_experience", "skills", "summary", "created_at"}


def infer_department(title: str) -> str:
    """Best-effort department from a role title. Falls back to Operations."""
    lower = title.lower()
    for keywords, department in DEPARTMENT_KEYWORDS:
        if any(k in lower for k in keywords):
            return department
    return "Operations"


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class SignalCollector:
    """
    Assembles a CandidateSignalBundle for (subject, context).

    Each source is read independently; a missing source leaves its slot
    empty and is never an error. Only the context itself is required.
    """

    def __init__(self, signals: SignalRepository):
        self.signals = signals

    def load_context(self, context_id: str) -> JobContext:
        """
        Load the job being evaluated against.

        Raises:
            NotFoundError: The job does not exist.
        """
        job = self.signals.get_job(context_id)
        if not job:
            raise NotFoundError(f"Job {context_id} not found")

        title = job.get("title") or "Unknown Role"
        return JobContext(
            id=context_id,
            title=title,
            department=job.get("department") or infer_department(title),
            seniority=job.get("seniority") or DEFAULT_SENIORITY,
            stage=job.get("status") or "applied",
            role_profile=job.get("role_profile")
        )

    def collect(self, subject_id: str, context_id: str) -> CandidateSignalBundle:
        """
        Read every source for the subject.

        Args:
            subject_id: Candidate id.
            context_id: Job id.

        Returns:
            Bundle with whichever sources were available.
        """
        bundle = CandidateSignalBundle(
            subject_id=subject_id,
            context_id=context_id,
            profile=self._profile(subject_id),
            fit=self._fit(subject_id, context_id),
            shortlist=self._shortlist(subject_id, context_id),
            warmups=self._warmups(subject_id, context_id),
            interviews=self._interviews(subject_id, context_id)
        )
        if bundle.is_empty():
            logger.info("No signals found for subject %s on job %s", subject_id, context_id)
        else:
            logger.debug("Signals for subject %s: %s", subject_id, bundle.signals_present())
        return bundle

    def _profile(self, subject_id: str) -> Optional[CandidateProfile]:
        row = self.signals.get_candidate(subject_id)
        if not row:
            return None
        return CandidateProfile(
            headline=row.get("headline") or "Not specified",
            years_experience=_as_float(row.get("years_experience")) or 0,
            skills=_as_list(row.get("skills")),
            summary=row.get("summary") or "",
            attributes={k: v for k, v in row.items() if k not in PROFILE_CORE_FIELDS}
        )

    def _fit(self, subject_id: str, context_id: str) -> Optional[FitSignal]:
        row = self.signals.latest_fit_score(subject_id, context_id)
        if not row:
            return None
        detail: Dict[str, Any] = row.get("fit_json") or {}
        return FitSignal(
            score=_as_float(row.get("fit_score")) or 0,
            strengths=_as_list(detail.get("strengths")),
            gaps=_as_list(detail.get("gaps")),
            dimension_scores=detail.get("dimension_scores") or {},
            record_id=row.get("id")
        )

    def _shortlist(self, subject_id: str, context_id: str) -> Optional[ShortlistSignal]:
        row = self.signals.latest_shortlist_score(subject_id, context_id)
        if not row:
            return None
        reasoning = row.get("reasoning_json") or {}
        return ShortlistSignal(
            score=_as_float(row.get("score")) or 0,
            summary=reasoning.get("final_summary", ""),
            record_id=row.get("id")
        )

    def _warmups(self, subject_id: str, context_id: str) -> List[WarmupSignal]:
        warmups = []
        for row in self.signals.recent_warmups(subject_id, context_id, MAX_WARMUPS):
            extracted = row.get("extracted_signals") or {}
            warmups.append(WarmupSignal(
                scenario=row.get("scenario_title") or "",
                signals=_as_list(extracted.get("signals")),
                dimensions_touched=_as_list(extracted.get("role_dimensions_touched"))
            ))
        return warmups

    def _interviews(self, subject_id: str, context_id: str) -> List[InterviewSignal]:
        interviews = []
        for row in self.signals.recent_interviews(subject_id, context_id, MAX_PRIOR_INTERVIEWS):
            evaluation = row.get("evaluation_json") or {}
            interviews.append(InterviewSignal(
                score=_as_float(evaluation.get("overall_score", row.get("overall_score"))),
                strengths=_as_list(evaluation.get("strengths")),
                gaps=_as_list(evaluation.get("improvement_areas")),
                completed_at=row.get("created_at")
            ))
        return interviews
