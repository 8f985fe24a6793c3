"""
HireSignal - Orchestrator
Coordinates collection, prompting, inference, validation and persistence.
"""

import logging
import threading
from typing import Dict, Any, Optional

from .config import AppConfig
from .errors import NotFoundError
from .models.corpus import CorpusItem, RankedSelection
from .models.records import BatchResult, DecisionType, KitRecord, LikelihoodRecord
from .models.runtime import InferenceRuntime
from .models.signals import JobContext
from .pipeline.batch import BatchRunner
from .pipeline.collector import SignalCollector
from .pipeline.prompts import FORBIDDEN_INFERENCES, PromptBuilder
from .pipeline.ranker import rank_corpus
from .pipeline.validator import validate_kit, validate_likelihood
from .pipeline.writer import DecisionTrace, DecisionWriter
from .store.json_store import JsonStore
from .store.repositories import DecisionRepository, SignalRepository

logger = logging.getLogger(__name__)

FOCUS_MODES = ("balanced", "execution", "communication", "problem_solving", "leadership", "culture")


class Orchestrator:
    """
    Runs the assessment pipeline for one subject or a whole pool.

    Per subject the chain is:
    1. Collect - Read every signal source into a bundle
    2. Prompt - Render system + user prompts without protected fields
    3. Infer - One chat completion at low temperature
    4. Validate - Parse, clamp, derive and backfill
    5. Persist - Decision record, then its audit entry
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[JsonStore] = None,
        runtime: Optional[InferenceRuntime] = None
    ):
        """
        Initialize orchestrator.

        Args:
            config: Application configuration.
            store: Table store. Defaults to one over ``config.data_dir``.
            runtime: Inference runtime. Defaults to one built from ``config.inference``.
        """
        self.config = config
        self.store = store or JsonStore(config.data_dir)
        self.runtime = runtime or InferenceRuntime(config.inference)

        self.signals = SignalRepository(self.store)
        self.decisions = DecisionRepository(self.store)
        self.collector = SignalCollector(self.signals)
        self.prompts = PromptBuilder(config.kit)
        self.writer = DecisionWriter(self.decisions, config.fairness.policy_version)
        self.batch = BatchRunner(config.batch.max_workers, config.batch.deadline_seconds)

    # =========================================================================
    # Corpus
    # =========================================================================

    def rank_for(self, context: JobContext) -> RankedSelection:
        """
        Rank the corpus for a job.

        Raises:
            NotFoundError: The corpus is empty.
        """
        rows = self.signals.corpus(self.config.ranking.corpus_fetch_limit)
        if not rows:
            raise NotFoundError("No questions found in question bank")
        items = [CorpusItem.from_row(row) for row in rows]
        return rank_corpus(items, context.department, context.seniority)

    # =========================================================================
    # Offer likelihood
    # =========================================================================

    def assess_likelihood(self, context_id: str, subject_id: str, actor_id: str) -> LikelihoodRecord:
        """
        Score one subject's offer likelihood and persist it.

        Args:
            context_id: Job id.
            subject_id: Candidate id.
            actor_id: Caller recorded on the decision.

        Returns:
            The persisted record.

        Raises:
            NotFoundError: The job does not exist.
            RateLimitedError, QuotaExceededError, InferenceTransportError: Inference failed.
            PersistenceError: A write failed.
        """
        context = self.collector.load_context(context_id)
        return self._likelihood_for(context, subject_id, actor_id)

    def _likelihood_for(
        self,
        context: JobContext,
        subject_id: str,
        actor_id: str,
        unique: bool = False
    ) -> LikelihoodRecord:
        logger.info("Assessing offer likelihood for subject %s on job %s", subject_id, context.id)
        bundle = self.collector.collect(subject_id, context.id)
        prompt = self.prompts.build_likelihood(context, bundle)
        inference = self.runtime.chat(
            prompt.system, prompt.user, self.config.inference.likelihood_temperature
        )
        validated = validate_likelihood(inference.text)

        reasoning = dict(validated.reasoning)
        if validated.fallback:
            reasoning["fallback_reason"] = validated.fallback_reason

        record = LikelihoodRecord(
            subject_id=subject_id,
            context_id=context.id,
            actor_id=actor_id,
            likelihood_score=validated.score,
            likelihood_band=validated.band,
            dimension_scores=validated.dimension_scores,
            reasoning=reasoning,
            fallback=validated.fallback,
            role_fit_id=bundle.fit.record_id if bundle.fit else None,
            shortlist_score_id=bundle.shortlist.record_id if bundle.shortlist else None
        )
        trace = DecisionTrace(context, bundle, inference, prompt.omitted_fields)
        self.writer.persist(record, trace, unique=unique)
        return record

    def bulk_assess_likelihood(
        self,
        context_id: str,
        actor_id: str,
        cancel_event: Optional[threading.Event] = None
    ) -> BatchResult:
        """
        Score every subject with a prior signal for the job that has no current record.

        Raises:
            NotFoundError: The job does not exist.
        """
        context = self.collector.load_context(context_id)
        pool = self.signals.subject_pool(context_id)
        done = self.decisions.subjects_with_current(DecisionType.OFFER_LIKELIHOOD, context_id)
        logger.info("Bulk likelihood for job %s: pool=%d", context_id, len(pool))

        def process(subject_id: str) -> str:
            return self._likelihood_for(context, subject_id, actor_id, unique=True).id

        return self.batch.run(pool, done, process, cancel_event)

    # =========================================================================
    # Interview kits
    # =========================================================================

    def generate_kit(
        self,
        context_id: str,
        subject_id: str,
        actor_id: str,
        focus_mode: str = "balanced"
    ) -> KitRecord:
        """
        Build and persist an interview kit for one subject.

        Args:
            context_id: Job id.
            subject_id: Candidate id.
            actor_id: Caller recorded on the decision.
            focus_mode: Interviewer-chosen emphasis.

        Returns:
            The persisted record.

        Raises:
            NotFoundError: The job does not exist or the corpus is empty.
        """
        context = self.collector.load_context(context_id)
        ranked = self.rank_for(context)
        return self._kit_for(context, ranked, subject_id, actor_id, focus_mode)

    def _kit_for(
        self,
        context: JobContext,
        ranked: RankedSelection,
        subject_id: str,
        actor_id: str,
        focus_mode: str,
        unique: bool = False
    ) -> KitRecord:
        logger.info("Generating interview kit for subject %s on job %s (focus=%s)", subject_id, context.id, focus_mode)
        bundle = self.collector.collect(subject_id, context.id)
        bank = ranked.head(self.config.ranking.prompt_slice)
        prompt = self.prompts.build_kit(context, bundle, bank, focus_mode)
        inference = self.runtime.chat(
            prompt.system, prompt.user, self.config.inference.kit_temperature
        )
        validated = validate_kit(inference.text, ranked, self.config.kit, FORBIDDEN_INFERENCES)

        record = KitRecord(
            subject_id=subject_id,
            context_id=context.id,
            actor_id=actor_id,
            focus_mode=focus_mode,
            kit_title=validated.kit_title,
            opening_script=validated.opening_script,
            selected_questions=validated.selected_questions,
            structure=validated.structure,
            explainability=validated.explainability,
            backfill=validated.backfill,
            fallback=validated.fallback
        )
        trace = DecisionTrace(context, bundle, inference, prompt.omitted_fields, corpus_items_sent=len(bank))
        self.writer.persist(record, trace, unique=unique)
        return record

    def bulk_generate_kits(
        self,
        context_id: str,
        actor_id: str,
        focus_mode: str = "balanced",
        cancel_event: Optional[threading.Event] = None
    ) -> BatchResult:
        """
        Generate kits for every subject with a prior signal for the job that has none.

        Raises:
            NotFoundError: The job does not exist or the corpus is empty.
        """
        context = self.collector.load_context(context_id)
        ranked = self.rank_for(context)
        pool = self.signals.subject_pool(context_id)
        done = self.decisions.subjects_with_current(DecisionType.INTERVIEW_KIT, context_id)
        logger.info("Bulk kits for job %s: pool=%d, corpus=%d", context_id, len(pool), len(ranked))

        def process(subject_id: str) -> str:
            return self._kit_for(context, ranked, subject_id, actor_id, focus_mode, unique=True).id

        return self.batch.run(pool, done, process, cancel_event)

    # =========================================================================
    # Retrieval
    # =========================================================================

    def current_record(
        self,
        decision_type: DecisionType,
        context_id: str,
        subject_id: str
    ) -> Optional[Dict[str, Any]]:
        """Newest persisted record for (subject, job), or None."""
        return self.decisions.current(decision_type, context_id, subject_id)
