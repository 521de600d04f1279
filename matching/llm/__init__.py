"""LLM Module - LLM services, interfaces and prompt builders."""
from matching.llm.interfaces import LLMProvider
from matching.llm.openai_service import OpenAIService
from matching.llm.prompts import FreeMatchPromptBuilder, PremiumMatchPromptBuilder, build_match_prompt

__all__ = [
    'LLMProvider',
    'OpenAIService',
    'FreeMatchPromptBuilder',
    'PremiumMatchPromptBuilder',
    'build_match_prompt',
]
