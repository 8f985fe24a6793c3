# tests/test_prompts.py
import pytest

from hiresignal.config import KitConfig
from hiresignal.models.corpus import CorpusItem
from hiresignal.models.signals import CandidateProfile, CandidateSignalBundle, FitSignal, JobContext
from hiresignal.pipeline.prompts import PromptBuilder, strip_protected
from hiresignal.pipeline.ranker import rank_corpus

from conftest import corpus_rows


def make_context():
    return JobContext(
        id="job-1",
        title="Senior Software Engineer",
        department="Engineering",
        seniority="senior",
        role_profile={"must_haves": ["python"], "ethnicity_target": None, "nationality": "any"}
    )


def make_bundle():
    return CandidateSignalBundle(
        subject_id="cand-1",
        context_id="job-1",
        profile=CandidateProfile(
            headline="Backend engineer",
            years_experience=7,
            skills=["python"],
            summary="Builds data services.",
            attributes={"gender": "female", "age": 41, "location": "Remote",
                        "history": [{"employer": "Acme", "religion": "n/a"}]}
        ),
        fit=FitSignal(score=82, strengths=["api design"], gaps=[])
    )


def test_strip_protected_nested():
    """Protected keys are removed at any depth and their paths reported."""
    cleaned, omitted = strip_protected({
        "Gender": "x",
        "profile": {"age": 30, "skills": ["go"]},
        "history": [{"marital_status": "single", "employer": "Acme"}],
    })
    assert cleaned == {"profile": {"skills": ["go"]}, "history": [{"employer": "Acme"}]}
    assert sorted(omitted) == ["Gender", "history[0].marital_status", "profile.age"]


def test_likelihood_prompt_omits_protected_fields():
    """Protected attributes never reach the prompt text."""
    prompt = PromptBuilder().build_likelihood(make_context(), make_bundle())

    for value in ("female", "age", "gender", "religion", "nationality"):
        assert f'"{value}"' not in prompt.user
    assert "Backend engineer" in prompt.user
    assert "Remote" not in prompt.user
    assert "Acme" not in prompt.user
    assert set(prompt.omitted_fields) == {
        "role_profile.nationality",
        "candidate_profile.gender",
        "candidate_profile.age",
        "candidate_profile.history[0].religion",
    }


def test_extra_profile_columns_never_reach_prompt():
    """Only core profile fields are sent, whatever columns the candidate row carries."""
    bundle = make_bundle()
    bundle.profile.attributes = {
        "gender_identity": "nonbinary",
        "veteran_status": "veteran",
        "ethnic_background": "withheld-ethnic",
        "religious_affiliation": "withheld-faith",
        "hobby": "sailing",
    }
    builder = PromptBuilder()
    ranked = rank_corpus([CorpusItem.from_row(r) for r in corpus_rows()], "Engineering", "senior")

    for prompt in (builder.build_likelihood(make_context(), bundle), builder.build_kit(make_context(), bundle, ranked)):
        for value in ("nonbinary", "veteran", "withheld-ethnic", "withheld-faith", "sailing"):
            assert value not in prompt.user
        assert "Backend engineer" in prompt.user
        assert set(prompt.omitted_fields) >= {
            "candidate_profile.gender_identity",
            "candidate_profile.veteran_status",
            "candidate_profile.ethnic_background",
            "candidate_profile.religious_affiliation",
        }


@pytest.mark.parametrize("key", ["gender_identity", "Veteran_Status", "ethnic_background", "religious_affiliation",
                                 "marital_state", "place_of_birth", "citizenship_country"])
def test_strip_protected_matches_stems(key):
    """Keys containing a protected stem are stripped."""
    cleaned, omitted = strip_protected({"role_profile": {key: "x", "must_haves": ["go"]}})
    assert cleaned == {"role_profile": {"must_haves": ["go"]}}
    assert omitted == [f"role_profile.{key}"]


def test_likelihood_system_prompt_declares_contract():
    """System prompt names the schema fields and forbidden inferences."""
    prompt = PromptBuilder().build_likelihood(make_context(), make_bundle())
    for name in ("likelihood_score", "likelihood_band", "role_alignment", "interview_performance", "engagement"):
        assert name in prompt.system
    assert "Do not consider: Age, Gender" in prompt.system
    assert "question bank" not in prompt.system.lower()


def test_prompts_are_deterministic():
    """Same inputs render byte-identical prompts."""
    builder = PromptBuilder()
    assert builder.build_likelihood(make_context(), make_bundle()) == builder.build_likelihood(make_context(), make_bundle())


def test_kit_prompt_embeds_ranked_bank():
    """Kit prompt embeds the ranked slice, focus mode and cardinality rules."""
    ranked = rank_corpus([CorpusItem.from_row(r) for r in corpus_rows()], "Engineering", "senior").head(5)
    prompt = PromptBuilder(KitConfig()).build_kit(make_context(), make_bundle(), ranked, focus_mode="leadership")

    assert "Question Bank (5 questions)" in prompt.user
    assert "Focus Mode: leadership" in prompt.user
    for question_id in ranked.ids():
        assert question_id in prompt.user
    assert "select 8-12 questions" in prompt.system
    assert "at least 2 questions" in prompt.system
    assert '"female"' not in prompt.user


def test_kit_prompt_with_no_signals():
    """An empty bundle still renders, with a placeholder for signals."""
    ranked = rank_corpus([CorpusItem.from_row(r) for r in corpus_rows()], "Engineering", "senior")
    bundle = CandidateSignalBundle(subject_id="cand-9", context_id="job-1")
    prompt = PromptBuilder().build_kit(make_context(), bundle, ranked)
    assert "Limited signals available" in prompt.user
    assert "Focus Mode: balanced" in prompt.user
