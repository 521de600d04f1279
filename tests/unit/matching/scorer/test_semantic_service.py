"""
Tests for SemanticMatchingService.

The LLM is replaced with MockLLMProvider; sleeping between batches is
captured by a Mock so tests run instantly.
"""
import json
from unittest.mock import Mock

import pytest

from matching.cache.match_cache import InMemoryMatchCache
from matching.config_loader import SemanticConfig
from matching.exceptions import SemanticServiceNotConfiguredError, ResponseParseError
from matching.scorer.interfaces import Scorer
from matching.scorer.semantic import (
    SemanticMatchingService,
    MatchingOptions,
    parse_match_response,
    strip_code_fences,
)
from tests.mocks.factories import build_job
from tests.mocks.llm_mocks import MockLLMProvider, match_entry


def make_service(llm, cache=None, **config):
    return SemanticMatchingService(
        llm=llm,
        cache=cache,
        config=SemanticConfig(**config),
        sleep=Mock()
    )


class TestConstruction:

    def test_missing_provider_is_fatal(self):
        with pytest.raises(SemanticServiceNotConfiguredError):
            SemanticMatchingService(llm=None)

    def test_implements_scorer_protocol(self):
        assert isinstance(make_service(MockLLMProvider()), Scorer)


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"matches": []}\n```') == '{"matches": []}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n{"matches": []}```') == '{"matches": []}'

    def test_no_fence(self):
        assert strip_code_fences('  {"matches": []} ') == '{"matches": []}'


class TestParseMatchResponse:

    def setup_method(self):
        self.batch = [build_job(i, title=f"Role {i}") for i in range(3)]

    def test_breakdown_maps_to_components(self):
        content = '{"matches": [%s]}' % (
            '{"jobIndex": 1, "matchScore": 88, "confidenceScore": 91, "matchReason": "Great fit",'
            ' "scoreBreakdown": {"skills": 95, "company": 70, "experience": 80, "location": 60}}'
        )
        [result] = parse_match_response(content, self.batch)

        assert result.job is self.batch[1]
        assert result.match_reason == "Great fit"
        score = result.unified_score
        assert score.method == "ai"
        assert score.overall == 88
        assert score.confidence == 91
        assert score.components.as_dict() == {
            'relevance': 95, 'quality': 70, 'opportunity': 80, 'timing': 60
        }
        assert score.explanation.startswith("Excellent match for Role 1")

    def test_missing_breakdown_derives_components(self):
        [result] = parse_match_response(json.dumps({"matches": [match_entry(0, 80)]}), self.batch)
        components = result.unified_score.components
        assert components.relevance == pytest.approx(32.0)
        assert components.quality == pytest.approx(24.0)
        assert components.opportunity == pytest.approx(16.0)
        assert components.timing == pytest.approx(8.0)

    def test_partial_breakdown(self):
        content = json.dumps({"matches": [match_entry(0, 50, breakdown={"skills": 90})]})
        [result] = parse_match_response(content, self.batch)
        assert result.unified_score.components.relevance == 90
        assert result.unified_score.components.quality == pytest.approx(15.0)

    def test_defaults(self):
        [result] = parse_match_response('{"matches": [{"jobIndex": 2}]}', self.batch)
        assert result.unified_score.overall == 0
        assert result.unified_score.confidence == 85
        assert result.match_reason == "AI analyzed match"

    def test_scores_are_clamped(self):
        content = json.dumps({"matches": [
            match_entry(0, 150, confidence=300, breakdown={"skills": 120, "company": -10}),
            match_entry(1, -5, confidence="high"),
        ]})
        first, second = parse_match_response(content, self.batch)

        assert first.unified_score.overall == 100
        assert first.unified_score.confidence == 100
        assert first.unified_score.components.relevance == 100
        assert first.unified_score.components.quality == 0
        assert second.unified_score.overall == 0
        assert second.unified_score.confidence == 0
        for result in (first, second):
            for value in result.unified_score.components.as_dict().values():
                assert 0 <= value <= 100

    def test_invalid_indexes_are_skipped(self):
        content = json.dumps({"matches": [
            match_entry(5, 90),
            match_entry(-1, 90),
            {"jobIndex": "1", "matchScore": 90},
            {"jobIndex": True, "matchScore": 90},
            {"matchScore": 90},
            "not an object",
            match_entry(2, 70),
        ]})
        results = parse_match_response(content, self.batch)
        assert [r.job.job_hash for r in results] == ["hash-2"]

    def test_missing_matches_key_raises(self):
        with pytest.raises(ResponseParseError):
            parse_match_response('{"results": []}', self.batch)

    def test_malformed_json_raises(self):
        with pytest.raises(ResponseParseError):
            parse_match_response('not json at all', self.batch)


class TestFindMatches:

    def test_batch_failure_is_isolated(self, free_user):
        """Batch 2 of 3 fails: only batches 1 and 3 contribute, sorted by score."""
        jobs = [build_job(i) for i in range(15)]
        llm = MockLLMProvider(responses=[
            {"matches": [match_entry(0, 60), match_entry(3, 90)]},
            ConnectionError("network down"),
            {"matches": [match_entry(1, 75), match_entry(4, 40)]},
        ])
        service = make_service(llm)

        results = service.find_matches(free_user, jobs)

        assert [r.job.job_hash for r in results] == ["hash-3", "hash-11", "hash-0", "hash-14"]
        assert [r.unified_score.overall for r in results] == [90, 75, 60, 40]
        assert len(llm.chat_calls) == 3

    def test_unparseable_batch_yields_nothing(self, free_user, caplog):
        jobs = [build_job(i) for i in range(10)]
        llm = MockLLMProvider(responses=[
            '{"results": []}',
            '```json\n{"matches": [{"jobIndex": 0, "matchScore": 70}]}\n```',
        ])
        service = make_service(llm)

        with caplog.at_level("ERROR", logger="matching.scorer.semantic"):
            results = service.find_matches(free_user, jobs)

        assert [r.job.job_hash for r in results] == ["hash-5"]
        assert any("batch 1/2 failed" in r.getMessage() for r in caplog.records)

    def test_sleeps_between_batches_only(self, free_user):
        llm = MockLLMProvider()
        service = make_service(llm, batch_delay_seconds=1.0)

        service.find_matches(free_user, [build_job(i) for i in range(11)])

        assert service._sleep.call_count == 2
        service._sleep.assert_called_with(1.0)

    def test_single_batch_does_not_sleep(self, free_user):
        service = make_service(MockLLMProvider())
        service.find_matches(free_user, [build_job(i) for i in range(5)])
        service._sleep.assert_not_called()

    def test_batch_size_is_configurable(self, free_user):
        llm = MockLLMProvider()
        service = make_service(llm, batch_size=2)
        service.find_matches(free_user, [build_job(i) for i in range(5)])
        assert len(llm.chat_calls) == 3

    def test_request_parameters(self, free_user):
        llm = MockLLMProvider()
        service = make_service(llm)

        service.find_matches(free_user, [build_job(0)])

        call = llm.chat_calls[0]
        assert call['model'] == "gpt-4o-mini"
        assert call['max_tokens'] == 2000
        assert call['temperature'] == 0.3
        assert "career counselor" in call['system_prompt']

    def test_options_override_request(self, free_user):
        llm = MockLLMProvider()
        service = make_service(llm)
        options = MatchingOptions(model="gpt-4o", max_tokens=500, temperature=0.0)

        service.find_matches(free_user, [build_job(0)], options=options)

        assert llm.chat_calls[0]['model'] == "gpt-4o"
        assert llm.chat_calls[0]['max_tokens'] == 500
        assert llm.chat_calls[0]['temperature'] == 0.0

    def test_tier_specific_prompts(self, free_user, premium_user):
        llm = MockLLMProvider()
        service = make_service(llm)

        service.find_matches(free_user, [build_job(0)])
        service.find_matches(premium_user, [build_job(0)])

        free_prompt = llm.chat_calls[0]['user_prompt']
        premium_prompt = llm.chat_calls[1]['user_prompt']
        assert "scoreBreakdown" not in free_prompt
        assert "scoreBreakdown" in premium_prompt
        assert "PREMIUM" in premium_prompt

    def test_max_matches_truncates(self, free_user):
        llm = MockLLMProvider(responses=[
            {"matches": [match_entry(i, 50 + i) for i in range(5)]},
        ])
        results = make_service(llm).find_matches(free_user, [build_job(i) for i in range(5)], max_matches=2)
        assert [r.unified_score.overall for r in results] == [54, 53]

    def test_empty_jobs(self, free_user):
        llm = MockLLMProvider()
        assert make_service(llm).find_matches(free_user, []) == []
        assert llm.chat_calls == []


class TestCaching:

    def test_cache_hit_skips_llm(self, free_user):
        jobs = [build_job(i) for i in range(5)]
        llm = MockLLMProvider(default_response={"matches": [match_entry(0, 77)]})
        service = make_service(llm, cache=InMemoryMatchCache())

        first = service.find_matches(free_user, jobs)
        second = service.find_matches(free_user, jobs)

        assert len(llm.chat_calls) == 1
        assert first == second

    def test_cache_disabled_by_options(self, free_user):
        jobs = [build_job(i) for i in range(5)]
        llm = MockLLMProvider()
        service = make_service(llm, cache=InMemoryMatchCache())

        service.find_matches(free_user, jobs, options=MatchingOptions(use_cache=False))
        service.find_matches(free_user, jobs, options=MatchingOptions(use_cache=False))

        assert len(llm.chat_calls) == 2

    def test_failed_batch_is_not_cached(self, free_user):
        jobs = [build_job(i) for i in range(5)]
        llm = MockLLMProvider(responses=[TimeoutError("slow")])
        cache = InMemoryMatchCache()
        service = make_service(llm, cache=cache)

        service.find_matches(free_user, jobs)
        service.find_matches(free_user, jobs)

        assert len(llm.chat_calls) == 2
        assert len(cache) == 1

    def test_key_depends_on_user_and_jobs(self, free_user, premium_user):
        service = make_service(MockLLMProvider())
        options = service.default_options()
        batch = [build_job(i) for i in range(3)]

        key = service.cache_key(free_user, batch, options)
        assert key == service.cache_key(free_user, list(batch), options)
        assert key != service.cache_key(premium_user, batch, options)
        assert key != service.cache_key(free_user, batch[:2], options)
        assert key != service.cache_key(free_user, list(reversed(batch)), options)
