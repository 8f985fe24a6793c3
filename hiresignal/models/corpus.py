"""
HireSignal - Question Corpus Models
Reusable interview questions and their rubrics. Read-only to the pipeline.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Any, List, Optional


class Category(Enum):
    """Question categories."""
    BEHAVIORAL = "behavioral"
    ROLE_SPECIFIC = "role_specific"
    EXECUTION = "execution"
    CULTURE_SAFE = "culture_safe"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        # Older corpus rows still use the pre-rename culture label.
        if value == "culture_nd_safe":
            return cls.CULTURE_SAFE
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass
class Rubric:
    """Answer rubric attached to a question."""
    what_good_looks_like: List[str] = field(default_factory=list)
    followup_probes: List[str] = field(default_factory=list)
    bias_traps_to_avoid: List[str] = field(default_factory=list)
    notes_for_interviewer: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Rubric":
        """Build from a rubric row; bookkeeping columns such as ``id`` are ignored."""
        return cls(
            what_good_looks_like=row.get("what_good_looks_like") or [],
            followup_probes=row.get("followup_probes") or [],
            bias_traps_to_avoid=row.get("bias_traps_to_avoid") or [],
            notes_for_interviewer=row.get("notes_for_interviewer") or ""
        )


@dataclass
class CorpusItem:
    """A single question in the corpus."""
    id: str
    department: str
    category: Category
    seniority: str
    difficulty: str
    safe: bool
    question_text: str
    intent: str = ""
    dimension: Optional[str] = None
    rubric: Optional[Rubric] = None
    archived: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.id,
            "department": self.department,
            "category": self.category.value,
            "seniority": self.seniority,
            "role_dimension": self.dimension,
            "difficulty": self.difficulty,
            "safe": self.safe,
            "question_text": self.question_text,
            "intent": self.intent,
            "rubric": self.rubric.to_dict() if self.rubric else None
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CorpusItem":
        rubric_data = row.get("rubric")
        return cls(
            id=str(row["id"]),
            department=row.get("department", ""),
            category=Category.parse(row.get("category")),
            seniority=row.get("seniority", ""),
            difficulty=row.get("difficulty", ""),
            safe=bool(row.get("safe", row.get("nd_safe", False))),
            question_text=row.get("question_text", ""),
            intent=row.get("intent", ""),
            dimension=row.get("role_dimension"),
            rubric=Rubric.from_row(rubric_data) if isinstance(rubric_data, dict) and rubric_data else None,
            archived=bool(row.get("is_archived", False))
        )


@dataclass
class RankedItem:
    """A corpus item with its relevance score."""
    item: CorpusItem
    score: int


@dataclass
class RankedSelection:
    """Corpus ordered by relevance. Rebuilt every invocation."""
    items: List[RankedItem]
    department: str
    seniority: str

    def __len__(self) -> int:
        return len(self.items)

    def ids(self) -> List[str]:
        return [r.item.id for r in self.items]

    def lookup(self) -> Dict[str, CorpusItem]:
        return {r.item.id: r.item for r in self.items}

    def head(self, limit: int) -> "RankedSelection":
        return RankedSelection(self.items[:limit], self.department, self.seniority)
