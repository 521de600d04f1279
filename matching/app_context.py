import logging
from dataclasses import dataclass
from typing import Optional

from matching.cache.match_cache import MatchCache, InMemoryMatchCache, RedisMatchCache
from matching.config_loader import AppConfig, LlmConfig, CacheConfig
from matching.embedding.service import EmbeddingService
from matching.embedding.store import InMemoryJobEmbeddingStore
from matching.llm.openai_service import OpenAIService
from matching.orchestrator import MatchingOrchestrator
from matching.redistribution import PreferenceRedistributor
from matching.scorer.fallback import FallbackScorer
from matching.scorer.semantic import SemanticMatchingService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Single source of truth for service instantiation. Services that need an
    LLM (semantic matching, embeddings) are None when no API key is configured;
    the orchestrator then runs on the fallback scorer alone.
    """
    config: AppConfig
    orchestrator: MatchingOrchestrator
    fallback_scorer: FallbackScorer
    redistributor: PreferenceRedistributor
    cache: Optional[MatchCache] = None
    ai_service: Optional[OpenAIService] = None
    semantic_service: Optional[SemanticMatchingService] = None
    embedding_service: Optional[EmbeddingService] = None

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance
        """
        cache = cls._build_cache(config.cache)

        ai_service = None
        if config.llm.api_key:
            ai_service = cls._build_ai_service(config.llm)
        else:
            logger.warning("No LLM API key configured; semantic matching disabled")

        semantic_service = None
        if ai_service is not None and config.semantic.enabled:
            semantic_service = SemanticMatchingService(
                llm=ai_service,
                cache=cache,
                config=config.semantic,
                llm_config=config.llm
            )

        embedding_service = None
        if ai_service is not None and config.embedding.enabled:
            embedding_service = EmbeddingService(
                llm=ai_service,
                store=InMemoryJobEmbeddingStore(),
                config=config.embedding
            )

        fallback_scorer = FallbackScorer(config.fallback)
        redistributor = PreferenceRedistributor(config.redistribution)
        orchestrator = MatchingOrchestrator(
            fallback=fallback_scorer,
            semantic=semantic_service,
            redistributor=redistributor,
            config=config.orchestrator
        )

        return cls(
            config=config,
            orchestrator=orchestrator,
            fallback_scorer=fallback_scorer,
            redistributor=redistributor,
            cache=cache,
            ai_service=ai_service,
            semantic_service=semantic_service,
            embedding_service=embedding_service
        )

    @staticmethod
    def _build_ai_service(llm_config: LlmConfig) -> OpenAIService:
        """Build OpenAI service from LLM configuration."""
        model_config = {
            'model': llm_config.model,
            'max_tokens': llm_config.max_tokens,
            'temperature': llm_config.temperature,
            'embedding_model': llm_config.embedding_model,
            'embedding_dimensions': llm_config.embedding_dimensions,
        }

        return OpenAIService(
            api_key=llm_config.api_key,
            base_url=llm_config.base_url,
            model_config=model_config,
            embedding_api_key=llm_config.embedding_api_key,
            embedding_base_url=llm_config.embedding_base_url
        )

    @staticmethod
    def _build_cache(cache_config: CacheConfig) -> Optional[MatchCache]:
        """Build the match cache backend named in config."""
        if cache_config.backend == "none":
            return None
        if cache_config.backend == "redis":
            return RedisMatchCache(
                redis_url=cache_config.redis_url,
                password=cache_config.password,
                ttl_seconds=cache_config.ttl_seconds
            )
        return InMemoryMatchCache(
            ttl_seconds=cache_config.ttl_seconds,
            max_entries=cache_config.max_entries
        )
