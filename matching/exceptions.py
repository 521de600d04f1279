#!/usr/bin/env python3
"""
Custom exceptions for the matching services.
"""


class MatchingServiceError(Exception):
    """Base exception for matching service errors."""
    pass


class SemanticServiceNotConfiguredError(MatchingServiceError):
    """Raised when the semantic matching service has no LLM client.

    This is a construction-time configuration error: callers should route
    to the fallback scorer instead of invoking the semantic service.
    """
    pass


class ResponseParseError(MatchingServiceError):
    """Raised when an LLM matching response cannot be parsed."""
    pass
