"""
Utilities Module

Helper functions and shared utilities for the DocQA backend.
"""

from .helpers import create_error_response, significant_tokens, source_label

__all__ = ["create_error_response", "significant_tokens", "source_label"]
