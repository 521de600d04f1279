#!/usr/bin/env python3
"""
Embedding Service - vector embeddings for jobs and user preferences.

Each job gets a composite text signature (title, company, description,
location) embedded with one provider call per job. Failures are isolated per
job. Storage is delegated to an optional ``JobEmbeddingStore``.
"""
import logging
from typing import List, Dict, Optional, Tuple

from matching.config_loader import EmbeddingConfig
from matching.embedding.store import JobEmbeddingStore
from matching.llm.interfaces import LLMProvider
from matching.models import Job, UserPreferences

logger = logging.getLogger(__name__)


class EmbeddingService:
    def __init__(
        self,
        llm: LLMProvider,
        store: Optional[JobEmbeddingStore] = None,
        config: Optional[EmbeddingConfig] = None
    ):
        self.llm = llm
        self.store = store
        self.config = config or EmbeddingConfig()

    @staticmethod
    def _job_fields(job: Job) -> List[Tuple[str, str]]:
        location = job.location or ", ".join(p for p in (job.city, job.country) if p)
        fields = [
            ("Title", job.title),
            ("Company", job.company),
            ("Description", job.description),
            ("Location", location),
        ]
        return [(label, value.strip()) for label, value in fields if value and value.strip()]

    @classmethod
    def signature_length(cls, job: Job) -> int:
        """Length of the job's raw content, without field labels."""
        return len(" ".join(value for _, value in cls._job_fields(job)))

    @classmethod
    def build_job_text(cls, job: Job) -> str:
        """Composite text from the job's non-empty title, company, description and location."""
        return ". ".join(f"{label}: {value}" for label, value in cls._job_fields(job))

    @staticmethod
    def build_preference_text(preferences: UserPreferences) -> str:
        parts = []
        if preferences.career_keywords:
            parts.append(f"Interests: {preferences.career_keywords}")
        if preferences.career_path:
            parts.append(f"Career paths: {', '.join(preferences.career_path)}")
        if preferences.entry_level_preference:
            parts.append(f"Experience level: {preferences.entry_level_preference}")
        if preferences.target_cities:
            parts.append(f"Locations: {', '.join(preferences.target_cities)}")
        return ". ".join(parts).strip()

    def _embed(self, text: str) -> List[float]:
        return self.llm.generate_embedding(text[:self.config.max_text_length])

    def batch_generate_job_embeddings(self, jobs: List[Job]) -> Dict[str, List[float]]:
        """
        Embed each job sequentially.

        Jobs without a hash, with too little text, or whose provider call
        fails are left out of the result.

        Returns:
            Mapping of job_hash -> embedding vector
        """
        embeddings: Dict[str, List[float]] = {}
        skipped = 0

        for job in jobs:
            if not job.job_hash:
                logger.debug(f"Skipping job without hash: {job.title!r}")
                skipped += 1
                continue

            length = self.signature_length(job)
            if length < self.config.min_text_length:
                logger.warning(f"Skipping job {job.job_hash}: text too short ({length} chars)")
                skipped += 1
                continue

            try:
                embeddings[job.job_hash] = self._embed(self.build_job_text(job))
            except Exception as e:
                logger.error(f"Failed to generate embedding for job {job.job_hash}: {e}")
                skipped += 1

        logger.info(f"Generated {len(embeddings)} job embeddings ({skipped} skipped)")
        return embeddings

    def store_job_embeddings(self, embeddings: Dict[str, List[float]]) -> int:
        """Persist embeddings through the configured store. Returns the number handled."""
        if not embeddings:
            return 0
        if self.store is None:
            logger.info(f"No embedding store configured; {len(embeddings)} embeddings not persisted")
            return len(embeddings)

        stored = self.store.save_job_embeddings(embeddings)
        logger.info(f"Stored {stored} job embeddings")
        return stored

    def generate_user_embedding(self, preferences: UserPreferences) -> Optional[List[float]]:
        """Embed a user's preference profile; None if there is nothing to embed or the call fails."""
        text = self.build_preference_text(preferences)
        if len(text) < self.config.min_text_length:
            logger.warning(f"Preference text too short to embed for {preferences.email}")
            return None
        try:
            return self._embed(text)
        except Exception as e:
            logger.error(f"Failed to generate preference embedding for {preferences.email}: {e}")
            return None

    def find_similar_jobs(self, preferences: UserPreferences, top_k: int = 50) -> List[Tuple[str, float]]:
        """Job hashes most similar to the user's preferences, via the configured store."""
        if self.store is None:
            logger.debug("No embedding store configured; semantic retrieval unavailable")
            return []
        query = self.generate_user_embedding(preferences)
        if query is None:
            return []
        return self.store.search(query, top_k=top_k)
