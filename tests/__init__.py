#!/usr/bin/env python3
"""
Test suite.

All tests run without network access or external services:

    # Run all tests
    python -m pytest tests/ -v

    # Using unittest (TestCase-based modules only)
    python -m unittest discover tests -v

Redis and OpenAI clients are always mocked.
"""
