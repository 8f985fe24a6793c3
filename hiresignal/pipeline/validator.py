"""
HireSignal - Contract Validator & Repairer
Turns untrusted model text into a record that always satisfies the output contract.

Every step has a fallback instead of an exception: unparseable output
becomes a neutral zero-score record, out-of-range numbers are clamped,
bad enumerations are derived from fixed thresholds, and short kit
selections are backfilled from the ranked corpus.
"""

import json
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import KitConfig
from ..errors import MalformedModelOutputError
from ..models.corpus import Category, CorpusItem, RankedSelection
from ..models.records import BackfillReport, KitQuestion

logger = logging.getLogger(__name__)

PARSE_FAILURE_MESSAGE = "evaluation failed due to parsing error"

# Leading code fence with optional language tag and a matching trailing fence.
# Backticks inside an unfenced response are left alone.
FENCE_PATTERN = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)\r?\n?```$", re.DOTALL)
# Greedy: first "{" to last "}".
OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

LIKELIHOOD_SCORE_RANGE = (0.0, 100.0)
DIMENSION_SCORE_RANGE = (0.0, 10.0)
ROUND_MINUTES_RANGE = (0, 180)

LIKELIHOOD_DIMENSIONS = ("role_alignment", "interview_performance", "engagement")

BANDS = ("high", "medium", "low")
PRIORITIES = ("high", "medium", "low")
CONFIDENCE_LEVELS = ("low", "medium", "high")

# (minimum score, label), highest first. Anything below the last is "low".
LIKELIHOOD_BAND_THRESHOLDS = ((75, "high"), (45, "medium"))
# Applied to the corpus relevance score (max 7) of a selected question.
KIT_PRIORITY_THRESHOLDS = ((5, "high"), (3, "medium"))
DEFAULT_CONFIDENCE = "medium"

REQUIRED_CATEGORIES = (
    Category.BEHAVIORAL,
    Category.ROLE_SPECIFIC,
    Category.EXECUTION,
    Category.CULTURE_SAFE,
)
# Order in which the total shortfall is filled once per-category minimums are met.
BACKFILL_PREFERENCE = (
    Category.BEHAVIORAL,
    Category.CULTURE_SAFE,
    Category.ROLE_SPECIFIC,
    Category.EXECUTION,
    Category.OTHER,
)
BACKFILL_RATIONALE = "Added to ensure balanced coverage of {category} questions."


@dataclass
class ParseOk:
    """Model output parsed into a JSON object."""
    data: Dict[str, Any]


@dataclass
class ParseFallback:
    """Model output could not be parsed."""
    reason: str


ParseResult = Union[ParseOk, ParseFallback]


@dataclass
class ValidatedLikelihood:
    """Likelihood payload with every field checked and repaired."""
    score: float
    band: str
    dimension_scores: Dict[str, float]
    reasoning: Dict[str, Any]
    fallback: bool = False
    fallback_reason: Optional[str] = None


@dataclass
class ValidatedKit:
    """Kit payload with every field checked and repaired."""
    kit_title: str
    opening_script: str
    selected_questions: List[KitQuestion]
    structure: Dict[str, Any]
    explainability: Dict[str, Any]
    backfill: BackfillReport = field(default_factory=BackfillReport)
    dropped_ids: List[str] = field(default_factory=list)
    fallback: bool = False
    fallback_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Extraction & parsing
# ---------------------------------------------------------------------------

def strip_code_fence(raw: str) -> str:
    """Return the body of a fence wrapping the whole of ``raw``, or ``raw`` unchanged."""
    match = FENCE_PATTERN.match(raw.strip())
    return match.group(1) if match else raw


def extract_json_text(raw: Optional[str]) -> Optional[str]:
    """
    Find the JSON object text inside a raw model response.

    Handles fenced-with-language-tag, fenced-without-tag and unfenced text.

    Args:
        raw: Raw assistant message content.

    Returns:
        Candidate object text, or None if no ``{...}`` span exists.
    """
    if not raw or not isinstance(raw, str):
        return None
    match = OBJECT_PATTERN.search(strip_code_fence(raw))
    return match.group(0) if match else None


def _load_object(raw: Optional[str]) -> Dict[str, Any]:
    text = extract_json_text(raw)
    if text is None:
        raise MalformedModelOutputError("no JSON object found in model output")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedModelOutputError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedModelOutputError("model output is not a JSON object")
    return data


def parse_model_output(raw: Optional[str]) -> ParseResult:
    """
    Parse raw model text into a typed result. Never raises.

    Args:
        raw: Raw assistant message content.

    Returns:
        ParseOk with the object, or ParseFallback with the reason.
    """
    try:
        return ParseOk(_load_object(raw))
    except MalformedModelOutputError as exc:
        logger.warning("Malformed model output (%s); using fallback record", exc.message)
        return ParseFallback(exc.message)


# ---------------------------------------------------------------------------
# Field repair helpers
# ---------------------------------------------------------------------------

def coerce_number(value: Any) -> float:
    """Numbers and numeric strings pass through; anything else is 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def clamp(value: Any, bounds: Tuple[float, float]) -> float:
    """Coerce then clamp into ``[low, high]``."""
    low, high = bounds
    return min(high, max(low, coerce_number(value)))


def derive_label(score: float, thresholds: Tuple[Tuple[float, str], ...], default: str = "low") -> str:
    """First label whose minimum ``score`` reaches."""
    for minimum, label in thresholds:
        if score >= minimum:
            return label
    return default


def derive_band(score: float) -> str:
    """Likelihood band: >=75 high, >=45 medium, else low."""
    return derive_label(score, LIKELIHOOD_BAND_THRESHOLDS)


def _choice(value: Any, allowed: Tuple[str, ...]) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [v if isinstance(v, str) else json.dumps(v) for v in value if v is not None]


def _string(value: Any, default: str = "") -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


# ---------------------------------------------------------------------------
# Offer likelihood
# ---------------------------------------------------------------------------

def validate_likelihood(raw: Optional[str]) -> ValidatedLikelihood:
    """
    Validate and repair an offer-likelihood response.

    Args:
        raw: Raw assistant message content.

    Returns:
        ValidatedLikelihood. On parse failure: score 0, band low, and an
        explanatory message in the reasoning payload.
    """
    parsed = parse_model_output(raw)
    if isinstance(parsed, ParseFallback):
        return ValidatedLikelihood(
            score=0.0,
            band=derive_band(0.0),
            dimension_scores={name: 0.0 for name in LIKELIHOOD_DIMENSIONS},
            reasoning={
                "message": PARSE_FAILURE_MESSAGE,
                "key_drivers": [],
                "key_risks": [],
                "recommended_next_actions": ["Re-run the assessment or review the candidate manually."],
                "candidate_friendly_coaching": [],
                "disclaimer": "No estimate could be produced for this candidate."
            },
            fallback=True,
            fallback_reason=parsed.reason
        )

    data = parsed.data
    score = clamp(data.get("likelihood_score"), LIKELIHOOD_SCORE_RANGE)
    band = _choice(data.get("likelihood_band"), BANDS) or derive_band(score)

    raw_dimensions = data.get("dimension_scores")
    raw_dimensions = raw_dimensions if isinstance(raw_dimensions, dict) else {}
    dimension_scores = {name: clamp(raw_dimensions.get(name), DIMENSION_SCORE_RANGE) for name in LIKELIHOOD_DIMENSIONS}
    for name, value in raw_dimensions.items():
        if name not in dimension_scores:
            dimension_scores[str(name)] = clamp(value, DIMENSION_SCORE_RANGE)

    reasoning = {
        "key_drivers": _string_list(data.get("key_drivers")),
        "key_risks": _string_list(data.get("key_risks")),
        "recommended_next_actions": _string_list(data.get("recommended_next_actions")),
        "candidate_friendly_coaching": _string_list(data.get("candidate_friendly_coaching")),
        "disclaimer": _string(data.get("disclaimer"), "Directional estimate, not a promise.")
    }
    return ValidatedLikelihood(
        score=score,
        band=band,
        dimension_scores=dimension_scores,
        reasoning=reasoning
    )


# ---------------------------------------------------------------------------
# Interview kit
# ---------------------------------------------------------------------------

def _kit_question(item: CorpusItem, entry: Dict[str, Any], rank_score: int) -> KitQuestion:
    rubric = item.rubric
    return KitQuestion(
        question_id=item.id,
        priority=_choice(entry.get("priority"), PRIORITIES) or derive_label(rank_score, KIT_PRIORITY_THRESHOLDS),
        why_this_question=_string(entry.get("why_this_question")),
        what_to_listen_for=_string_list(entry.get("what_to_listen_for"))
        or (list(rubric.what_good_looks_like) if rubric else []),
        suggested_followups=_string_list(entry.get("suggested_followups")),
        bias_traps_to_avoid=_string_list(entry.get("bias_traps_to_avoid")),
        question_text=item.question_text,
        category=item.category.value,
        difficulty=item.difficulty,
        safe=item.safe,
        rubric=rubric.to_dict() if rubric else None
    )


def _backfilled_question(item: CorpusItem) -> KitQuestion:
    rubric = item.rubric
    return KitQuestion(
        question_id=item.id,
        priority="low",
        why_this_question=BACKFILL_RATIONALE.format(category=item.category.value.replace("_", " ")),
        what_to_listen_for=list(rubric.what_good_looks_like) if rubric else [],
        suggested_followups=list(rubric.followup_probes) if rubric else [],
        bias_traps_to_avoid=list(rubric.bias_traps_to_avoid) if rubric else [],
        question_text=item.question_text,
        category=item.category.value,
        difficulty=item.difficulty,
        safe=item.safe,
        rubric=rubric.to_dict() if rubric else None,
        backfilled=True
    )


def backfill_selection(
    selected: List[KitQuestion],
    ranked: RankedSelection,
    min_total: int,
    min_per_category: int
) -> BackfillReport:
    """
    Append ranked corpus items until the cardinality rules hold.

    Per-category minimums are met first, in REQUIRED_CATEGORIES order; the
    remaining total shortfall is filled in BACKFILL_PREFERENCE order. Within
    a category, items are taken in rank order, skipping ids already chosen.
    Running out of corpus is reported, not raised.

    Args:
        selected: Current selection. Appended to in place.
        ranked: Ranked corpus.
        min_total: Minimum number of questions.
        min_per_category: Minimum per required category.

    Returns:
        BackfillReport of additions and anything left unmet.
    """
    chosen = {q.question_id for q in selected}
    counts = Counter(q.category for q in selected)
    report = BackfillReport()

    def take(category: Category, needed: int) -> int:
        for ranked_item in ranked.items:
            if needed <= 0:
                break
            item = ranked_item.item
            if item.category is category and item.id not in chosen:
                selected.append(_backfilled_question(item))
                chosen.add(item.id)
                report.added.append(item.id)
                needed -= 1
        return needed

    for category in REQUIRED_CATEGORIES:
        needed = min_per_category - counts[category.value]
        if needed > 0:
            remaining = take(category, needed)
            if remaining > 0:
                report.unmet_categories[category.value] = remaining

    for category in BACKFILL_PREFERENCE:
        shortfall = min_total - len(selected)
        if shortfall <= 0:
            break
        take(category, shortfall)

    report.shortfall = max(0, min_total - len(selected))
    if report.added:
        logger.info("Backfilled %d kit questions: %s", len(report.added), report.added)
    if report.exhausted:
        logger.warning(
            "Kit minimum not met, corpus exhausted (shortfall=%d, unmet=%s)",
            report.shortfall, report.unmet_categories
        )
    return report


def _structure(value: Any) -> Dict[str, Any]:
    value = value if isinstance(value, dict) else {}
    rounds_in = value.get("suggested_rounds")
    rounds = []
    for entry in rounds_in if isinstance(rounds_in, list) else []:
        if not isinstance(entry, dict):
            continue
        rounds.append({
            "round": _string(entry.get("round"), "Interview"),
            "minutes": int(clamp(entry.get("minutes"), ROUND_MINUTES_RANGE)),
            "focus": _string(entry.get("focus"))
        })
    return {
        "suggested_rounds": rounds,
        "time_plan_notes": _string_list(value.get("time_plan_notes"))
    }


def _explainability(value: Any, forbidden: List[str]) -> Dict[str, Any]:
    value = value if isinstance(value, dict) else {}
    return {
        "what_was_evaluated": _string(value.get("what_was_evaluated")),
        "key_factors_considered": _string_list(value.get("key_factors_considered")),
        "factors_not_considered": _string_list(value.get("factors_not_considered")) or list(forbidden),
        "confidence_level": _choice(value.get("confidence_level"), CONFIDENCE_LEVELS) or DEFAULT_CONFIDENCE,
        "limitations": _string_list(value.get("limitations"))
    }


def validate_kit(
    raw: Optional[str],
    ranked: RankedSelection,
    kit_config: Optional[KitConfig] = None,
    forbidden: Optional[List[str]] = None
) -> ValidatedKit:
    """
    Validate, enrich and repair an interview-kit response.

    Selected ids missing from ``ranked`` are dropped, duplicates collapsed,
    each remaining question is enriched from the corpus, and the selection
    is backfilled up to the cardinality rules. A parse failure yields an
    empty selection that backfill fills from ranking alone.

    Args:
        raw: Raw assistant message content.
        ranked: Ranked corpus slice the model chose from.
        kit_config: Cardinality rules.
        forbidden: Default "factors not considered" list.

    Returns:
        ValidatedKit.
    """
    kit_config = kit_config or KitConfig()
    forbidden = forbidden or []
    parsed = parse_model_output(raw)
    data = parsed.data if isinstance(parsed, ParseOk) else {}

    lookup = {r.item.id: r for r in ranked.items}
    selected: List[KitQuestion] = []
    dropped: List[str] = []
    seen = set()
    entries = data.get("selected_questions")
    for entry in entries if isinstance(entries, list) else []:
        if not isinstance(entry, dict):
            continue
        question_id = str(entry.get("question_id", ""))
        if question_id in seen:
            continue
        ranked_item = lookup.get(question_id)
        if ranked_item is None:
            dropped.append(question_id)
            continue
        seen.add(question_id)
        selected.append(_kit_question(ranked_item.item, entry, ranked_item.score))
    if dropped:
        logger.warning("Dropped %d selected ids not in the ranked corpus: %s", len(dropped), dropped)

    report = backfill_selection(selected, ranked, kit_config.min_questions, kit_config.min_per_category)

    explainability = _explainability(data.get("explainability"), forbidden)
    if isinstance(parsed, ParseFallback):
        explainability["confidence_level"] = "low"
        explainability["limitations"].append(
            f"{PARSE_FAILURE_MESSAGE}; questions were chosen by corpus ranking only."
        )
    if report.exhausted:
        explainability["limitations"].append("Minimum question coverage not met: question bank exhausted.")

    return ValidatedKit(
        kit_title=_string(data.get("kit_title"), "Interview Kit"),
        opening_script=_string(data.get("opening_script")),
        selected_questions=selected,
        structure=_structure(data.get("structure")),
        explainability=explainability,
        backfill=report,
        dropped_ids=dropped,
        fallback=isinstance(parsed, ParseFallback),
        fallback_reason=parsed.reason if isinstance(parsed, ParseFallback) else None
    )
