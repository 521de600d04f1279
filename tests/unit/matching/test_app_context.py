from unittest.mock import patch

from matching.app_context import AppContext
from matching.cache.match_cache import InMemoryMatchCache
from matching.config_loader import AppConfig


def config_with(**sections):
    return AppConfig(**sections)


class TestAppContextBuild:

    def test_without_api_key_uses_fallback_only(self):
        ctx = AppContext.build(config_with())

        assert ctx.ai_service is None
        assert ctx.semantic_service is None
        assert ctx.embedding_service is None
        assert ctx.orchestrator.semantic is None
        assert ctx.orchestrator.fallback is ctx.fallback_scorer
        assert isinstance(ctx.cache, InMemoryMatchCache)

    @patch('matching.app_context.OpenAIService')
    def test_api_key_wires_semantic_service(self, mock_service):
        config = config_with(
            llm={'api_key': "sk-test", 'model': "gpt-4o"},
            embedding={'enabled': True},
        )

        ctx = AppContext.build(config)

        kwargs = mock_service.call_args[1]
        assert kwargs['api_key'] == "sk-test"
        assert kwargs['model_config']['model'] == "gpt-4o"
        assert ctx.semantic_service is not None
        assert ctx.semantic_service.cache is ctx.cache
        assert ctx.orchestrator.semantic is ctx.semantic_service
        assert ctx.embedding_service is not None
        assert ctx.embedding_service.store is not None

    @patch('matching.app_context.OpenAIService')
    def test_embedding_endpoint_is_wired(self, mock_service):
        AppContext.build(config_with(llm={
            'api_key': "sk-test",
            'embedding_base_url': "http://embeddings:8000/v1",
            'embedding_api_key': "sk-embed",
        }))

        kwargs = mock_service.call_args[1]
        assert kwargs['embedding_base_url'] == "http://embeddings:8000/v1"
        assert kwargs['embedding_api_key'] == "sk-embed"

    @patch('matching.app_context.OpenAIService')
    def test_semantic_disabled(self, mock_service):
        ctx = AppContext.build(config_with(llm={'api_key': "sk-test"}, semantic={'enabled': False}))
        assert ctx.ai_service is not None
        assert ctx.semantic_service is None

    def test_cache_backend_none(self):
        assert AppContext.build(config_with(cache={'backend': "none"})).cache is None

    @patch('matching.app_context.RedisMatchCache')
    def test_cache_backend_redis(self, mock_cache):
        ctx = AppContext.build(config_with(cache={'backend': "redis", 'redis_url': "redis://r:6379/2"}))

        mock_cache.assert_called_once_with(
            redis_url="redis://r:6379/2", password=None, ttl_seconds=1800
        )
        assert ctx.cache is mock_cache.return_value

    def test_config_flows_to_components(self):
        ctx = AppContext.build(config_with(
            fallback={'max_matches': 4},
            redistribution={'source_selection': "largest"},
            orchestrator={'job_cap': 20},
        ))
        assert ctx.fallback_scorer.config.max_matches == 4
        assert ctx.redistributor.config.source_selection == "largest"
        assert ctx.orchestrator.config.job_cap == 20
