"""
HireSignal - Candidate Signal Models
Normalized per-source signals assembled fresh for every invocation.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional


@dataclass
class JobContext:
    """The role a candidate is evaluated against."""
    id: str
    title: str
    department: str
    seniority: str
    stage: str = "applied"
    role_profile: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CandidateProfile:
    """Base profile. ``attributes`` carries every other upstream field and is never prompted."""
    headline: str
    years_experience: float
    skills: List[str]
    summary: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FitSignal:
    """Most recent role-fit score for (subject, context)."""
    score: float
    strengths: List[str]
    gaps: List[str]
    dimension_scores: Dict[str, Any] = field(default_factory=dict)
    record_id: Optional[str] = None


@dataclass
class ShortlistSignal:
    """Most recent pipeline/shortlist predictive score."""
    score: float
    summary: str
    record_id: Optional[str] = None


@dataclass
class WarmupSignal:
    """Signals extracted from one warm-up scenario response."""
    scenario: str
    signals: List[str]
    dimensions_touched: List[str] = field(default_factory=list)


@dataclass
class InterviewSignal:
    """One completed prior interview."""
    score: Optional[float]
    strengths: List[str]
    gaps: List[str]
    completed_at: Optional[str] = None


@dataclass
class CandidateSignalBundle:
    """
    Everything known about a subject for one context.

    Every source is optional. An empty bundle is still valid and still
    produces a prompt.
    """
    subject_id: str
    context_id: str
    profile: Optional[CandidateProfile] = None
    fit: Optional[FitSignal] = None
    shortlist: Optional[ShortlistSignal] = None
    warmups: List[WarmupSignal] = field(default_factory=list)
    interviews: List[InterviewSignal] = field(default_factory=list)

    def signals_present(self) -> Dict[str, bool]:
        return {
            "profile": self.profile is not None,
            "role_fit": self.fit is not None,
            "shortlist_score": self.shortlist is not None,
            "warmup_signals": bool(self.warmups),
            "prior_interviews": bool(self.interviews),
        }

    def is_empty(self) -> bool:
        return not any(self.signals_present().values())

    def to_prompt_dict(self) -> Dict[str, Any]:
        """
        Serialize for prompt embedding. Absent sources become ``None``.

        Only the core profile fields are sent; ``attributes`` never leave the bundle.
        """
        profile = None
        if self.profile:
            profile = {
                "headline": self.profile.headline,
                "years_experience": self.profile.years_experience,
                "skills": self.profile.skills,
                "summary": self.profile.summary,
            }
        return {
            "candidate_id": self.subject_id,
            "candidate_profile": profile,
            "role_fit": {
                "fit_score": self.fit.score,
                "strengths": self.fit.strengths,
                "gaps": self.fit.gaps,
                "dimension_scores": self.fit.dimension_scores,
            } if self.fit else None,
            "shortlist_score": {
                "score": self.shortlist.score,
                "summary": self.shortlist.summary,
            } if self.shortlist else None,
            "warmup_signals": [
                {"scenario": w.scenario, "signals": w.signals, "dimensions": w.dimensions_touched}
                for w in self.warmups
            ],
            "interview_signals": [
                {"score": i.score, "strengths": i.strengths, "gaps": i.gaps}
                for i in self.interviews
            ],
        }
