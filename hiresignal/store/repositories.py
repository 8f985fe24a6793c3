"""
HireSignal - Repositories
Read/write operations keyed by record identifiers, over the table store.
"""

from typing import Dict, Any, List, Optional, Set

from .json_store import JsonStore
from ..errors import DuplicateDecisionError
from ..models.records import AuditLogEntry, DecisionType


class SignalRepository:
    """Read-only lookups for jobs, candidates, prior signals and the corpus."""

    def __init__(self, store: JsonStore):
        self.store = store

    def get_job(self, context_id: str) -> Optional[Dict[str, Any]]:
        rows = self.store.select("jobs", {"id": context_id})
        return rows[0] if rows else None

    def get_candidate(self, subject_id: str) -> Optional[Dict[str, Any]]:
        rows = self.store.select("candidates", {"user_id": subject_id})
        return rows[0] if rows else None

    def latest_fit_score(self, subject_id: str, context_id: str) -> Optional[Dict[str, Any]]:
        rows = self.store.latest("role_fit_scores", {"user_id": subject_id, "job_id": context_id})
        return rows[0] if rows else None

    def latest_shortlist_score(self, subject_id: str, context_id: str) -> Optional[Dict[str, Any]]:
        rows = self.store.latest("shortlist_scores", {"user_id": subject_id, "job_id": context_id})
        return rows[0] if rows else None

    def recent_interviews(self, subject_id: str, context_id: str, limit: int = 3) -> List[Dict[str, Any]]:
        """Most recent completed interview sessions."""
        return self.store.latest(
            "interview_sessions",
            {"user_id": subject_id, "job_id": context_id, "status": "completed"},
            limit=limit
        )

    def recent_warmups(self, subject_id: str, context_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        return self.store.latest("warmup_runs", {"user_id": subject_id, "job_id": context_id}, limit=limit)

    def corpus(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Non-archived corpus rows in store order."""
        rows = self.store.select("corpus_questions", predicate=lambda r: not r.get("is_archived", False))
        return rows[:limit] if limit else rows

    def subject_pool(self, context_id: str) -> List[str]:
        """
        Every subject with any prior signal for the context.

        Returns:
            Subject ids in first-seen order (fit scores, then shortlist scores).
        """
        seen: Dict[str, None] = {}
        for table in ("role_fit_scores", "shortlist_scores"):
            for row in self.store.select(table, {"job_id": context_id}):
                seen.setdefault(row["user_id"], None)
        return list(seen)


class DecisionRepository:
    """Writes decision records and audit entries, reads current records."""

    AUDIT_TABLE = "ai_decision_audit_logs"

    def __init__(self, store: JsonStore):
        self.store = store

    def current(self, decision_type: DecisionType, context_id: str, subject_id: str) -> Optional[Dict[str, Any]]:
        """The newest record for (subject, context), or None."""
        rows = self.store.latest(decision_type.table, {"context_id": context_id, "subject_id": subject_id})
        return rows[0] if rows else None

    def subjects_with_current(self, decision_type: DecisionType, context_id: str) -> Set[str]:
        return {row["subject_id"] for row in self.store.select(decision_type.table, {"context_id": context_id})}

    def insert_decision(self, decision_type: DecisionType, row: Dict[str, Any], unique: bool = False) -> Dict[str, Any]:
        """
        Insert a decision row.

        Args:
            decision_type: Which table to write.
            row: Serialized record.
            unique: Refuse the write if (subject, context) already has a record.

        Returns:
            The inserted row.

        Raises:
            DuplicateDecisionError: ``unique`` was set and a record exists.
            PersistenceError: The write failed.
        """
        with self.store.lock:
            if unique and self.current(decision_type, row["context_id"], row["subject_id"]):
                raise DuplicateDecisionError(
                    f"{decision_type.value} already exists for subject {row['subject_id']}"
                )
            return self.store.insert(decision_type.table, row)

    def insert_audit(self, entry: AuditLogEntry) -> Dict[str, Any]:
        return self.store.insert(self.AUDIT_TABLE, entry.to_dict())

    def audit_entries(self, decision_id: Optional[str] = None) -> List[Dict[str, Any]]:
        where = {"decision_id": decision_id} if decision_id else None
        return self.store.select(self.AUDIT_TABLE, where)


class IdentityRepository:
    """Bearer tokens and role grants."""

    def __init__(self, store: JsonStore):
        self.store = store

    def user_for_token(self, token: str) -> Optional[str]:
        rows = self.store.select("auth_tokens", {"token": token})
        if not rows or rows[0].get("revoked", False):
            return None
        return rows[0]["user_id"]

    def roles_for_user(self, user_id: str) -> List[str]:
        return [row["role"] for row in self.store.select("user_roles", {"user_id": user_id})]
