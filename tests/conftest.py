"""
Shared fixtures: a seeded JSON store, a test configuration and a fake
chat-completions endpoint patched over ``requests``.
"""

import json
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from hiresignal.config import AppConfig
from hiresignal.main import create_app
from hiresignal.orchestrator import Orchestrator
from hiresignal.store.json_store import JsonStore

JOB_ID = "job-1"
RECRUITER_TOKEN = "token-recruiter"
CANDIDATE_TOKEN = "token-candidate"
REVOKED_TOKEN = "token-revoked"

REQUIRED_CATEGORIES = ["behavioral", "role_specific", "execution", "culture_safe"]


def corpus_rows() -> List[Dict[str, Any]]:
    """Four questions per required category plus a legacy-labelled and an archived one."""
    rows = []
    for category in REQUIRED_CATEGORIES:
        for i in range(1, 5):
            rows.append({
                "id": f"q-{category}-{i}",
                "department": "Engineering" if i <= 2 else "Sales",
                "category": category,
                "seniority": "senior" if i % 2 == 1 else "mid",
                "difficulty": "medium",
                "nd_safe": True,
                "question_text": f"{category} question {i}",
                "intent": f"Assess {category}",
                "role_dimension": category,
                "rubric": {
                    "what_good_looks_like": [f"clear {category} example"],
                    "followup_probes": ["What would you change?"],
                    "bias_traps_to_avoid": ["Judging delivery style"],
                    "notes_for_interviewer": ""
                } if i != 4 else None,
            })
    rows.append({
        "id": "q-legacy-culture",
        "department": "Engineering",
        "category": "culture_nd_safe",
        "seniority": "senior",
        "difficulty": "easy",
        "nd_safe": True,
        "question_text": "How do you like to receive feedback?",
    })
    rows.append({
        "id": "q-archived",
        "department": "Engineering",
        "category": "behavioral",
        "seniority": "senior",
        "difficulty": "easy",
        "question_text": "Retired question",
        "is_archived": True,
    })
    return rows


def seed_store(store: JsonStore, corpus: bool = True):
    """Populate every table the pipeline reads."""
    tables: Dict[str, List[Dict[str, Any]]] = {
        "jobs": [
            {
                "id": JOB_ID,
                "title": "Senior Software Engineer",
                "department": "Engineering",
                "seniority": "senior",
                "status": "interviewing",
                "role_profile": {"must_haves": ["python", "distributed systems"], "hiring_manager_name": "Pat"},
            },
            {"id": "job-2", "title": "Product Manager"},
        ],
        "candidates": [
            {
                "user_id": "cand-1",
                "headline": "Backend engineer",
                "years_experience": 7,
                "skills": ["python", "postgres"],
                "summary": "Builds data services.",
                "full_name": "Ada Example",
                "gender": "female",
                "age": 41,
                "location": "Remote",
            },
            {"user_id": "cand-2", "headline": "Platform engineer", "skills": "go, kubernetes"},
            {"user_id": "cand-3", "headline": "SRE"},
        ],
        "role_fit_scores": [
            {"id": "fit-old", "user_id": "cand-1", "job_id": JOB_ID, "fit_score": 40,
             "fit_json": {"strengths": ["old"]}, "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": "fit-new", "user_id": "cand-1", "job_id": JOB_ID, "fit_score": 82,
             "fit_json": {"strengths": ["api design"], "gaps": ["on-call"],
                          "dimension_scores": {"technical": 8}},
             "created_at": "2024-03-01T00:00:00+00:00"},
            {"id": "fit-2", "user_id": "cand-2", "job_id": JOB_ID, "fit_score": 65,
             "created_at": "2024-02-01T00:00:00+00:00"},
        ],
        "shortlist_scores": [
            {"id": "short-1", "user_id": "cand-1", "job_id": JOB_ID, "score": 71,
             "reasoning_json": {"final_summary": "Strong backend depth"},
             "created_at": "2024-03-02T00:00:00+00:00"},
            {"id": "short-3", "user_id": "cand-3", "job_id": JOB_ID, "score": 55,
             "created_at": "2024-03-03T00:00:00+00:00"},
        ],
        "interview_sessions": [
            {"id": f"int-{i}", "user_id": "cand-1", "job_id": JOB_ID, "status": "completed",
             "evaluation_json": {"overall_score": 60 + i, "strengths": ["clarity"], "improvement_areas": ["scope"]},
             "created_at": f"2024-04-0{i}T00:00:00+00:00"}
            for i in range(1, 5)
        ] + [
            {"id": "int-open", "user_id": "cand-1", "job_id": JOB_ID, "status": "in_progress",
             "created_at": "2024-04-09T00:00:00+00:00"},
        ],
        "warmup_runs": [
            {"id": "warm-1", "user_id": "cand-1", "job_id": JOB_ID, "scenario_title": "Incident triage",
             "extracted_signals": {"signals": ["calm under pressure"], "role_dimensions_touched": ["execution"]},
             "created_at": "2024-03-05T00:00:00+00:00"},
        ],
        "auth_tokens": [
            {"token": RECRUITER_TOKEN, "user_id": "user-recruiter"},
            {"token": CANDIDATE_TOKEN, "user_id": "user-candidate"},
            {"token": REVOKED_TOKEN, "user_id": "user-recruiter", "revoked": True},
        ],
        "user_roles": [
            {"user_id": "user-recruiter", "role": "recruiter"},
            {"user_id": "user-candidate", "role": "candidate"},
        ],
    }
    if corpus:
        tables["corpus_questions"] = corpus_rows()
    for table, rows in tables.items():
        for row in rows:
            store.insert(table, row)


def likelihood_reply(score: Any = 68, band: Any = None, **dimensions) -> str:
    body = {
        "likelihood_score": score,
        "dimension_scores": dimensions or {"role_alignment": 7, "interview_performance": 6.5, "engagement": 8},
        "key_drivers": ["Strong role fit"],
        "key_risks": ["Limited on-call exposure"],
        "recommended_next_actions": ["Schedule system design round"],
        "candidate_friendly_coaching": [],
        "disclaimer": "Directional estimate only.",
    }
    if band is not None:
        body["likelihood_band"] = band
    return json.dumps(body)


def kit_reply(question_ids: List[str], **overrides) -> str:
    body = {
        "kit_title": "Senior Engineer Interview Kit",
        "opening_script": "Thanks for joining. There are no trick questions.",
        "selected_questions": [
            {
                "question_id": qid,
                "priority": "high",
                "why_this_question": "Validates a strength from the signals.",
                "what_to_listen_for": ["Concrete example"],
                "suggested_followups": [],
                "bias_traps_to_avoid": ["Penalizing pauses"],
            }
            for qid in question_ids
        ],
        "structure": {
            "suggested_rounds": [
                {"round": "Technical", "minutes": 45, "focus": "Systems"},
                {"round": "Marathon", "minutes": 500, "focus": "Everything"},
            ],
            "time_plan_notes": ["Leave five minutes for questions"],
        },
        "explainability": {
            "what_was_evaluated": "Role profile and candidate signals",
            "key_factors_considered": ["role fit"],
            "confidence_level": "high",
            "limitations": [],
        },
    }
    body.update(overrides)
    return "```json\n" + json.dumps(body) + "\n```"


FULL_KIT_IDS = [f"q-{category}-{i}" for category in REQUIRED_CATEGORIES for i in (1, 2)]


def http_response(status: int, body: Any = None, text: str = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    if body is None and text is not None:
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.json.return_value = body
        response.text = json.dumps(body)
    return response


class FakeInference:
    """
    Stand-in for ``requests.post`` against the chat-completions endpoint.

    Replies are routed on the candidate id embedded in the user prompt. A
    reply may be a string (assistant content), an int (HTTP error status)
    or an exception instance (raised).
    """

    def __init__(self):
        self.likelihood_default: Any = likelihood_reply()
        self.kit_default: Any = kit_reply(FULL_KIT_IDS)
        self.by_subject: Dict[str, Any] = {}
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, url, **kwargs):
        payload = kwargs["json"]
        self.calls.append({"url": url, **kwargs})
        system = payload["messages"][0]["content"]
        user = payload["messages"][1]["content"]

        reply = self.kit_default if "question bank" in system.lower() else self.likelihood_default
        for subject_id, value in self.by_subject.items():
            if f'"candidate_id":"{subject_id}"' in user:
                reply = value
                break

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return http_response(reply, {"error": {"message": "upstream failure"}})
        return http_response(200, {"choices": [{"message": {"role": "assistant", "content": reply}}]})


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig.from_dict({
        "inference": {"base_url": "http://inference.test/v1", "model": "test-model", "timeout": 5},
        "store": {"data_dir": "data"},
        "batch": {"max_workers": 2, "deadline_seconds": 30},
        "logging": {"level": "WARNING", "log_dir": "logs"},
    }, base_path=tmp_path)


@pytest.fixture
def store(config) -> JsonStore:
    store = JsonStore(config.data_dir)
    seed_store(store)
    return store


@pytest.fixture
def fake_inference(monkeypatch) -> FakeInference:
    fake = FakeInference()
    monkeypatch.setattr("hiresignal.models.runtime.requests.post", fake)
    monkeypatch.setattr(
        "hiresignal.models.runtime.requests.get",
        MagicMock(return_value=http_response(200, {"data": []}))
    )
    return fake


@pytest.fixture
def orchestrator(config, store, fake_inference) -> Orchestrator:
    return Orchestrator(config, store=store)


@pytest.fixture
def client(config, orchestrator):
    app = create_app(config=config, orchestrator=orchestrator)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {RECRUITER_TOKEN}"}
