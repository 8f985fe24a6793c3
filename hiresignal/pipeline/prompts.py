"""
HireSignal - Prompt Builder
Deterministic system + user prompts with a strict output contract.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import KitConfig
from ..models.corpus import RankedSelection
from ..models.signals import CandidateSignalBundle, JobContext

# Field names that never reach a prompt, at any nesting depth.
PROTECTED_ATTRIBUTES = frozenset({
    "age", "date_of_birth", "dob", "birth_date", "birth_year",
    "gender", "sex", "pronouns", "sexual_orientation",
    "ethnicity", "race", "nationality", "national_origin", "citizenship",
    "religion", "disability", "disability_status", "health",
    "marital_status", "family_status", "pregnancy", "children",
    "photo_url", "avatar_url", "full_name", "name", "accent",
})
# Any key containing one of these is protected too (gender_identity, veteran_status, ...).
PROTECTED_STEMS = (
    "gender", "ethnic", "racial", "veteran", "religio", "marital", "birth",
    "pregnan", "disabilit", "sexual", "nationalit", "citizen",
)

FORBIDDEN_INFERENCES = [
    "Age", "Gender", "Ethnicity", "Accent", "Career gaps alone",
    "Disability", "Religion", "Family status",
]

ROLE_PROFILE_CHARS = 2000
SIGNALS_CHARS = 1500


@dataclass
class Prompt:
    """A rendered prompt pair and the protected fields it left out."""
    system: str
    user: str
    omitted_fields: List[str] = field(default_factory=list)


def is_protected(key: Any) -> bool:
    """True if a field name is, or contains, a protected attribute."""
    name = str(key).lower()
    return name in PROTECTED_ATTRIBUTES or any(stem in name for stem in PROTECTED_STEMS)


def strip_protected(data: Any, path: str = "") -> Tuple[Any, List[str]]:
    """
    Remove protected-attribute keys from nested dicts and lists.

    Args:
        data: JSON-like value.
        path: Dotted prefix used to report omitted keys.

    Returns:
        (cleaned copy, dotted paths of every omitted key)
    """
    omitted: List[str] = []
    if isinstance(data, dict):
        cleaned = {}
        for key, value in data.items():
            key_path = f"{path}.{key}" if path else str(key)
            if is_protected(key):
                omitted.append(key_path)
                continue
            cleaned[key], nested = strip_protected(value, key_path)
            omitted.extend(nested)
        return cleaned, omitted
    if isinstance(data, list):
        cleaned_list = []
        for index, value in enumerate(data):
            item, nested = strip_protected(value, f"{path}[{index}]")
            cleaned_list.append(item)
            omitted.extend(nested)
        return cleaned_list, omitted
    return data, omitted


def _compact(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


class PromptBuilder:
    """
    Renders prompts for each decision type.

    Output is a pure function of its inputs: same bundle, same context and
    same ranked slice give byte-identical prompts.
    """

    LIKELIHOOD_SYSTEM_PROMPT = """You are a recruiting strategist. Estimate the candidate's directional Offer Likelihood for this role.

Offer Likelihood is the directional (not guaranteed) chance that this candidate will perform strongly in interviews, progress through stages, and reach offer-ready status.

You MUST:
- Use only evidence from the provided data (role profile, role fit, shortlist score, warm-up signals, interview signals, stage).
- Never infer protected characteristics. Do not consider: {forbidden}.
- Not penalize non-linear careers or neurodivergent communication styles.
- Treat this as guidance, not judgment. No harsh language.

Return ONLY a JSON object matching exactly:
{{
  "likelihood_score": integer 0-100,
  "likelihood_band": "high" | "medium" | "low",
  "dimension_scores": {{
    "role_alignment": number 0-10,
    "interview_performance": number 0-10,
    "engagement": number 0-10
  }},
  "key_drivers": ["3-5 evidence-based reasons that increase likelihood"],
  "key_risks": ["3-5 evidence-based risks that could block progress"],
  "recommended_next_actions": ["concrete recruiter actions to de-risk"],
  "candidate_friendly_coaching": ["0-4 supportive notes the recruiter can share"],
  "disclaimer": "one sentence: directional estimate, not a promise"
}}"""

    LIKELIHOOD_USER_PROMPT = """Analyze the following candidate data and estimate their Offer Likelihood for this role.

ROLE:
{role}

CANDIDATE SIGNALS:
{signals}

Provide a directional estimate based on the available evidence. Be fair, evidence-based, and supportive."""

    KIT_SYSTEM_PROMPT = """You are an expert interview designer.

Goal: select {min_questions}-{max_questions} questions from the provided question bank to build an Interview Kit for this job and candidate.

You MUST:
- Align questions to the role profile.
- Target validation of candidate strengths and growth areas from the signals.
- Use neurodivergent-safe, respectful framing.
- Include at least {min_per_category} questions from EACH of these categories: {categories}.
- Only use question_id values that appear in the question bank.
- Prefer questions with strong rubrics and bias traps.
- Never infer protected characteristics. Do not consider: {forbidden}.
- Never suggest rejection or pass/fail language. This is a guidance tool.

Return ONLY a JSON object matching exactly:
{{
  "kit_title": "string",
  "opening_script": "2-4 sentences the interviewer reads to set a calm tone",
  "selected_questions": [
    {{
      "question_id": "id from the question bank",
      "priority": "high" | "medium" | "low",
      "why_this_question": "evidence-based reason tied to the role and candidate signals",
      "what_to_listen_for": ["2-5 observable bullets"],
      "suggested_followups": ["0-4 follow-ups"],
      "bias_traps_to_avoid": ["0-4 bias traps"]
    }}
  ],
  "structure": {{
    "suggested_rounds": [{{"round": "string", "minutes": integer 0-180, "focus": "string"}}],
    "time_plan_notes": ["short reminders to keep the interview structured"]
  }},
  "explainability": {{
    "what_was_evaluated": "plain English",
    "key_factors_considered": ["..."],
    "factors_not_considered": {forbidden_json},
    "confidence_level": "low" | "medium" | "high",
    "limitations": ["..."]
  }}
}}"""

    KIT_USER_PROMPT = """Generate an Interview Kit for:
Job: {title} ({seniority} level, {department} department)
Focus Mode: {focus_mode}

Role Profile:
{role_profile}

Candidate Signals:
{signals}

Question Bank ({bank_size} questions):
{bank}

Select {min_questions}-{max_questions} questions that best evaluate this candidate for this role. Return only valid JSON."""

    def __init__(self, kit_config: Optional[KitConfig] = None):
        self.kit_config = kit_config or KitConfig()

    def _signals_payload(self, bundle: CandidateSignalBundle) -> Tuple[Dict[str, Any], List[str]]:
        signals, omitted = strip_protected(bundle.to_prompt_dict())
        if bundle.profile:
            # Extra profile columns are never sent; the protected ones are still reported.
            _, withheld = strip_protected(bundle.profile.attributes, "candidate_profile")
            omitted.extend(withheld)
        return signals, omitted

    def build_likelihood(self, context: JobContext, bundle: CandidateSignalBundle) -> Prompt:
        """
        Prompt for offer-likelihood scoring. Embeds no corpus.

        Args:
            context: Job being evaluated against.
            bundle: Collected candidate signals.

        Returns:
            Prompt with the list of omitted protected fields.
        """
        signals, omitted = self._signals_payload(bundle)
        role, role_omitted = strip_protected({
            "job_id": context.id,
            "title": context.title,
            "department": context.department,
            "seniority": context.seniority,
            "pipeline_stage": context.stage,
            "role_profile": context.role_profile,
        })
        system = self.LIKELIHOOD_SYSTEM_PROMPT.format(forbidden=", ".join(FORBIDDEN_INFERENCES))
        user = self.LIKELIHOOD_USER_PROMPT.format(role=_compact(role), signals=_compact(signals))
        return Prompt(system=system, user=user, omitted_fields=role_omitted + omitted)

    def build_kit(
        self,
        context: JobContext,
        bundle: CandidateSignalBundle,
        ranked: RankedSelection,
        focus_mode: str = "balanced"
    ) -> Prompt:
        """
        Prompt for interview-kit selection over the ranked corpus slice.

        Args:
            context: Job being evaluated against.
            bundle: Collected candidate signals.
            ranked: Ranked, already truncated corpus slice.
            focus_mode: Interviewer-chosen emphasis.

        Returns:
            Prompt with the list of omitted protected fields.
        """
        signals, omitted = self._signals_payload(bundle)
        role_profile, role_omitted = strip_protected(context.role_profile or {})
        bank = [r.item.to_dict() for r in ranked.items]

        signals_text = _compact(signals)[:SIGNALS_CHARS] if not bundle.is_empty() \
            else "Limited signals available - use general best practices."

        system = self.KIT_SYSTEM_PROMPT.format(
            min_questions=self.kit_config.min_questions,
            max_questions=self.kit_config.max_questions,
            min_per_category=self.kit_config.min_per_category,
            categories="behavioral, role_specific, execution, culture_safe",
            forbidden=", ".join(FORBIDDEN_INFERENCES),
            forbidden_json=json.dumps(FORBIDDEN_INFERENCES)
        )
        user = self.KIT_USER_PROMPT.format(
            title=context.title,
            seniority=context.seniority,
            department=context.department,
            focus_mode=focus_mode,
            role_profile=_compact(role_profile)[:ROLE_PROFILE_CHARS],
            signals=signals_text,
            bank_size=len(bank),
            bank=_compact(bank),
            min_questions=self.kit_config.min_questions,
            max_questions=self.kit_config.max_questions
        )
        return Prompt(system=system, user=user, omitted_fields=role_omitted + omitted)
