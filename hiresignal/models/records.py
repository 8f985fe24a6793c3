"""
HireSignal - Decision Records
Persisted outputs of the pipeline and the audit trail that explains them.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class DecisionType(Enum):
    """Kinds of decision record, with the table each one lives in."""
    OFFER_LIKELIHOOD = "offer_likelihood"
    INTERVIEW_KIT = "interview_kit"

    @property
    def table(self) -> str:
        return {
            DecisionType.OFFER_LIKELIHOOD: "offer_likelihood_scores",
            DecisionType.INTERVIEW_KIT: "interview_kits",
        }[self]


@dataclass
class LikelihoodRecord:
    """Offer likelihood for one (subject, context)."""
    subject_id: str
    context_id: str
    actor_id: str
    likelihood_score: float  # 0-100
    likelihood_band: str  # high | medium | low
    dimension_scores: Dict[str, float]  # each 0-10
    reasoning: Dict[str, Any]
    fallback: bool = False
    role_fit_id: Optional[str] = None
    shortlist_score_id: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_utc_timestamp)

    decision_type = DecisionType.OFFER_LIKELIHOOD

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KitQuestion:
    """One selected question in an interview kit."""
    question_id: str
    priority: str  # high | medium | low
    why_this_question: str
    what_to_listen_for: List[str]
    suggested_followups: List[str]
    bias_traps_to_avoid: List[str]
    question_text: str = ""
    category: str = "other"
    difficulty: str = ""
    safe: bool = False
    rubric: Optional[Dict[str, Any]] = None
    backfilled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BackfillReport:
    """What the minimum-cardinality repair added, and what it could not."""
    added: List[str] = field(default_factory=list)
    shortfall: int = 0
    unmet_categories: Dict[str, int] = field(default_factory=dict)

    @property
    def exhausted(self) -> bool:
        return self.shortfall > 0 or bool(self.unmet_categories)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": self.added,
            "exhausted": self.exhausted,
            "shortfall": self.shortfall,
            "unmet_categories": self.unmet_categories
        }


@dataclass
class KitRecord:
    """Interview kit for one (subject, context)."""
    subject_id: str
    context_id: str
    actor_id: str
    focus_mode: str
    kit_title: str
    opening_script: str
    selected_questions: List[KitQuestion]
    structure: Dict[str, Any]
    explainability: Dict[str, Any]
    backfill: BackfillReport = field(default_factory=BackfillReport)
    fallback: bool = False
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_utc_timestamp)

    decision_type = DecisionType.INTERVIEW_KIT

    def categories_mix(self) -> Dict[str, int]:
        mix: Dict[str, int] = {}
        for question in self.selected_questions:
            mix[question.category] = mix.get(question.category, 0) + 1
        return mix

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["backfill"] = self.backfill.to_dict()
        return data


@dataclass
class AuditLogEntry:
    """Structured explanation of one persisted decision."""
    decision_type: str
    decision_id: str
    context_id: str
    subject_id: str
    actor_id: str
    input_summary: Dict[str, Any]
    output_summary: Dict[str, Any]
    explanation: str
    fairness_checks: Dict[str, Any]
    model_metadata: Dict[str, Any]
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class OutcomeStatus(Enum):
    """Per-subject result inside a batch run."""
    PROCESSED = "processed"
    SKIPPED = "skipped"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class SubjectOutcome:
    """What happened to one subject in a batch."""
    subject_id: str
    status: OutcomeStatus
    error: Optional[str] = None
    record_id: Optional[str] = None


@dataclass
class BatchResult:
    """Aggregated counts for one batch run."""
    processed: int
    skipped: int
    errors: int
    cancelled: int
    pool_size: int = 0
    outcomes: List[SubjectOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls,
        outcomes: List[SubjectOutcome],
        already_done: int = 0,
        pool_size: int = 0
    ) -> "BatchResult":
        """
        Fold per-subject outcomes into counts.

        Args:
            outcomes: One outcome per attempted subject.
            already_done: Subjects filtered out before the run started.
            pool_size: Distinct subjects in the pool.

        Returns:
            BatchResult with totals.
        """
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        return cls(
            processed=counts[OutcomeStatus.PROCESSED],
            skipped=already_done + counts[OutcomeStatus.SKIPPED],
            errors=counts[OutcomeStatus.ERROR],
            cancelled=counts[OutcomeStatus.CANCELLED],
            pool_size=pool_size,
            outcomes=outcomes
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "failed_subjects": [
                {"subjectId": o.subject_id, "error": o.error}
                for o in self.outcomes if o.status == OutcomeStatus.ERROR
            ]
        }
