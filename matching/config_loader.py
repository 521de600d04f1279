import yaml
import os
import logging
from typing import Optional, Literal
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LlmConfig(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.3  # Low temperature keeps batch scoring close to deterministic
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: Optional[int] = None  # None = model default (1536 for text-embedding-3-small)
    # Separate endpoint for embeddings; the key defaults to api_key
    embedding_base_url: Optional[str] = None
    embedding_api_key: Optional[str] = None


class CacheConfig(BaseModel):
    """Configuration for the semantic match cache."""
    backend: Literal["memory", "redis", "none"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    ttl_seconds: int = 30 * 60
    max_entries: int = 10000  # in-memory backend only


class SemanticConfig(BaseModel):
    """
    Configuration for the SemanticMatchingService.

    Jobs are sent to the LLM in fixed-size batches, strictly sequentially,
    with a pause between batches to respect provider rate limits.
    """
    enabled: bool = True
    batch_size: int = 5
    batch_delay_seconds: float = 1.0
    use_cache: bool = True


class FallbackWeights(BaseModel):
    """Signal weights for the rule-based fallback scorer.

    The literal weights sum to 1.10, so the raw weighted score can reach 110.
    It is clamped to [0, 100] before bucketing unless ``normalize`` is set,
    in which case every weight is divided by the total.
    """
    skills: float = 0.40
    experience: float = 0.25
    location: float = 0.20
    career_path: float = 0.15
    recency: float = 0.10
    normalize: bool = False

    @property
    def total(self) -> float:
        return self.skills + self.experience + self.location + self.career_path + self.recency


class FallbackConfig(BaseModel):
    weights: FallbackWeights = Field(default_factory=FallbackWeights)
    max_matches: int = 10
    confidence: float = 75.0


class RedistributionConfig(BaseModel):
    """Post-scoring fairness passes (city, source, career path)."""
    enabled: bool = True
    # first_seen: the two sources encountered first in result order
    # largest: the two sources with most matches (ties by first appearance)
    source_selection: Literal["first_seen", "largest"] = "first_seen"


class EmbeddingConfig(BaseModel):
    enabled: bool = False
    min_text_length: int = 10
    max_text_length: int = 8000


class OrchestratorConfig(BaseModel):
    strategy: Literal["hybrid", "ai_only", "fallback_only"] = "hybrid"
    job_cap: int = 200
    per_user_cap: int = 10
    user_cap: int = 1000
    apply_redistribution: bool = True


class AppConfig(BaseModel):
    llm: LlmConfig = Field(default_factory=LlmConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    semantic: SemanticConfig = Field(default_factory=SemanticConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    redistribution: RedistributionConfig = Field(default_factory=RedistributionConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from root), try the project root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Config file not found, using defaults: {config_path}")

    # Allow env var override for the LLM credentials
    env_api_key = os.environ.get("OPENAI_API_KEY")
    if env_api_key:
        if not data.get('llm'):
            data['llm'] = {}
        if not data['llm'].get('api_key'):
            data['llm']['api_key'] = env_api_key

    env_llm_base_url = os.environ.get("LLM_BASE_URL")
    if env_llm_base_url:
        if not data.get('llm'):
            data['llm'] = {}
        data['llm']['base_url'] = env_llm_base_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if not data.get('cache'):
            data['cache'] = {}
        data['cache']['redis_url'] = env_redis_url

    return AppConfig(**data)
