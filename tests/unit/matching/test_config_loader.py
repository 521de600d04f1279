import unittest
import os
import yaml
from unittest.mock import patch, mock_open

from pydantic import ValidationError

from matching.config_loader import load_config, AppConfig, LlmConfig, FallbackWeights


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self.sample_config = {
            "llm": {
                "base_url": "http://llm-proxy:8080/v1",
                "model": "gpt-4o",
                "max_tokens": 1500
            },
            "cache": {"backend": "redis", "redis_url": "redis://cache:6379/1"},
            "semantic": {"batch_size": 3, "batch_delay_seconds": 0.5},
            "fallback": {"max_matches": 8, "weights": {"normalize": True}},
            "redistribution": {"source_selection": "largest"},
            "orchestrator": {"strategy": "fallback_only", "job_cap": 50}
        }
        self.config_yaml = yaml.dump(self.sample_config)
        env = {k: v for k, v in os.environ.items() if k not in ("OPENAI_API_KEY", "LLM_BASE_URL", "REDIS_URL")}
        self.env_patch = patch.dict(os.environ, env, clear=True)
        self.env_patch.start()

    def tearDown(self):
        self.env_patch.stop()

    def test_load_config_from_yaml(self):
        with patch("builtins.open", mock_open(read_data=self.config_yaml)):
            with patch("os.path.exists", return_value=True):
                config = load_config("dummy_path.yaml")
                self.assertIsInstance(config, AppConfig)
                self.assertEqual(config.llm.model, "gpt-4o")
                self.assertEqual(config.llm.max_tokens, 1500)
                self.assertEqual(config.cache.backend, "redis")
                self.assertEqual(config.semantic.batch_size, 3)
                self.assertEqual(config.fallback.max_matches, 8)
                self.assertTrue(config.fallback.weights.normalize)
                self.assertEqual(config.fallback.weights.skills, 0.40)
                self.assertEqual(config.redistribution.source_selection, "largest")
                self.assertEqual(config.orchestrator.strategy, "fallback_only")
                self.assertEqual(config.orchestrator.job_cap, 50)
                self.assertEqual(config.orchestrator.per_user_cap, 10)

    def test_missing_file_uses_defaults(self):
        with patch("os.path.exists", return_value=False):
            config = load_config("nowhere.yaml")
        self.assertEqual(config, AppConfig())
        self.assertEqual(config.semantic.batch_size, 5)
        self.assertEqual(config.semantic.batch_delay_seconds, 1.0)
        self.assertEqual(config.cache.ttl_seconds, 1800)
        self.assertEqual(config.cache.max_entries, 10000)
        self.assertEqual(config.orchestrator.strategy, "hybrid")
        self.assertEqual(config.orchestrator.job_cap, 200)

    def test_empty_file_uses_defaults(self):
        with patch("builtins.open", mock_open(read_data="")):
            with patch("os.path.exists", return_value=True):
                config = load_config("empty.yaml")
        self.assertEqual(config.llm.model, "gpt-4o-mini")

    def test_env_var_api_key_fills_missing_key(self):
        with patch("builtins.open", mock_open(read_data=self.config_yaml)):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}):
                    config = load_config("dummy_path.yaml")
                    self.assertEqual(config.llm.api_key, "sk-env")

    def test_env_var_api_key_does_not_replace_configured_key(self):
        data = dict(self.sample_config)
        data["llm"] = dict(data["llm"], api_key="sk-file")
        with patch("builtins.open", mock_open(read_data=yaml.dump(data))):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}):
                    config = load_config("dummy_path.yaml")
                    self.assertEqual(config.llm.api_key, "sk-file")

    def test_env_var_override_base_url_and_redis(self):
        with patch("builtins.open", mock_open(read_data=self.config_yaml)):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, {
                    "LLM_BASE_URL": "http://env-llm:9000/v1",
                    "REDIS_URL": "redis://env-redis:6379/0"
                }):
                    config = load_config("dummy_path.yaml")
                    self.assertEqual(config.llm.base_url, "http://env-llm:9000/v1")
                    self.assertEqual(config.cache.redis_url, "redis://env-redis:6379/0")

    def test_env_override_without_sections(self):
        with patch("builtins.open", mock_open(read_data=yaml.dump({"semantic": {"enabled": False}}))):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env", "REDIS_URL": "redis://r:1/0"}):
                    config = load_config("dummy_path.yaml")
                    self.assertEqual(config.llm.api_key, "sk-env")
                    self.assertEqual(config.cache.redis_url, "redis://r:1/0")
                    self.assertFalse(config.semantic.enabled)

    def test_invalid_values_raise(self):
        bad = yaml.dump({"orchestrator": {"strategy": "random"}})
        with patch("builtins.open", mock_open(read_data=bad)):
            with patch("os.path.exists", return_value=True):
                with self.assertRaises(ValidationError):
                    load_config("dummy_path.yaml")

    def test_llm_config_defaults(self):
        llm = LlmConfig()
        self.assertEqual(llm.model, "gpt-4o-mini")
        self.assertEqual(llm.max_tokens, 2000)
        self.assertEqual(llm.temperature, 0.3)
        self.assertIsNone(llm.api_key)

    def test_fallback_weights_total(self):
        self.assertAlmostEqual(FallbackWeights().total, 1.10)
        self.assertFalse(FallbackWeights().normalize)


if __name__ == '__main__':
    unittest.main()
