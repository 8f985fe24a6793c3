"""
HireSignal - Persistence & Audit Writer
Writes a decision record followed by the audit entry that explains it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from ..models.records import AuditLogEntry, KitRecord, LikelihoodRecord
from ..models.runtime import InferenceResult
from ..models.signals import CandidateSignalBundle, JobContext
from ..store.repositories import DecisionRepository

logger = logging.getLogger(__name__)

DecisionRecord = Union[LikelihoodRecord, KitRecord]


@dataclass
class DecisionTrace:
    """The exact objects one invocation used, kept for the audit summaries."""
    context: JobContext
    bundle: CandidateSignalBundle
    inference: InferenceResult
    omitted_fields: List[str]
    corpus_items_sent: int = 0


class DecisionWriter:
    """
    Persists decision records and their audit trail.

    The decision is written first, then the audit entry. If the audit write
    fails, the decision stays and the error propagates to the caller.
    """

    def __init__(self, decisions: DecisionRepository, policy_version: str):
        self.decisions = decisions
        self.policy_version = policy_version

    def persist(self, record: DecisionRecord, trace: DecisionTrace, unique: bool = False) -> AuditLogEntry:
        """
        Write a record and its audit entry.

        Args:
            record: Fully validated record.
            trace: Objects the record was produced from.
            unique: Refuse the write if a current record already exists.

        Returns:
            The audit entry that was written.

        Raises:
            DuplicateDecisionError: ``unique`` and a record exists.
            PersistenceError: Either write failed.
        """
        self.decisions.insert_decision(record.decision_type, record.to_dict(), unique=unique)
        entry = self.build_audit_entry(record, trace)
        self.decisions.insert_audit(entry)
        logger.info(
            "Persisted %s %s for subject %s on job %s",
            record.decision_type.value, record.id, record.subject_id, record.context_id
        )
        return entry

    def build_audit_entry(self, record: DecisionRecord, trace: DecisionTrace) -> AuditLogEntry:
        """Derive the audit entry from the record and its trace. No recomputation."""
        return AuditLogEntry(
            decision_type=record.decision_type.value,
            decision_id=record.id,
            context_id=record.context_id,
            subject_id=record.subject_id,
            actor_id=record.actor_id,
            input_summary=self._input_summary(record, trace),
            output_summary=self._output_summary(record),
            explanation=self._explanation(record, trace),
            fairness_checks={
                "protected_attributes_excluded": True,
                "protected_fields_omitted": list(trace.omitted_fields),
                "nd_safe_language": True,
                "non_linear_careers_penalized": False,
                "policy_version": self.policy_version
            },
            model_metadata={
                "model": trace.inference.model,
                "temperature": trace.inference.temperature,
                "latency_ms": round(trace.inference.latency_ms),
                "policy_version": self.policy_version
            }
        )

    def _input_summary(self, record: DecisionRecord, trace: DecisionTrace) -> Dict[str, Any]:
        summary = {
            "job_title": trace.context.title,
            "department": trace.context.department,
            "seniority": trace.context.seniority,
            "signals_present": trace.bundle.signals_present(),
            "prior_interviews_used": len(trace.bundle.interviews),
            "warmups_used": len(trace.bundle.warmups),
        }
        if isinstance(record, KitRecord):
            summary["focus_mode"] = record.focus_mode
            summary["question_bank_size_sent"] = trace.corpus_items_sent
        return summary

    def _output_summary(self, record: DecisionRecord) -> Dict[str, Any]:
        if isinstance(record, LikelihoodRecord):
            return {
                "likelihood_score": record.likelihood_score,
                "likelihood_band": record.likelihood_band,
                "dimension_scores": record.dimension_scores,
                "fallback": record.fallback
            }
        return {
            "selected_count": len(record.selected_questions),
            "categories_mix": record.categories_mix(),
            "confidence_level": record.explainability.get("confidence_level"),
            "backfilled_count": len(record.backfill.added),
            "backfill_exhausted": record.backfill.exhausted,
            "fallback": record.fallback
        }

    def _explanation(self, record: DecisionRecord, trace: DecisionTrace) -> str:
        if isinstance(record, LikelihoodRecord):
            if record.fallback:
                return "Offer likelihood could not be estimated: model output was unparseable; neutral record stored."
            return (
                f"Estimated offer likelihood {record.likelihood_score:.0f} ({record.likelihood_band}) "
                f"for {trace.context.title} from available candidate signals."
            )
        return (
            f"Generated interview kit with {len(record.selected_questions)} questions aligned to "
            f"{trace.context.title} and candidate signals. Focus mode: {record.focus_mode}."
        )
