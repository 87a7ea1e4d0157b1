"""
Utility Functions for the DocQA Backend

Helpers for query tokenisation, source labelling and error payloads
shared by the retrieval pipeline and the API layer.
"""

import string
import time
from typing import Any, Dict, List, Mapping, Optional

SOURCE_LABEL_FIELDS = ("filename", "title", "url")
UNKNOWN_SOURCE = "Unknown source"


def significant_tokens(question: str, min_token_length: int = 3) -> List[str]:
    """
    Split a question into the lowercase words used for relevance matching.

    Args:
        question: Raw question text
        min_token_length: Words must be strictly longer than this

    Returns:
        Lowercase tokens longer than ``min_token_length``, in question order,
        with leading and trailing punctuation removed
    """
    words = (word.strip(string.punctuation) for word in question.lower().split())
    return [word for word in words if len(word) > min_token_length]


def source_label(metadata: Mapping[str, Any]) -> str:
    """Best available human-readable name for the document behind a chunk."""
    for key in SOURCE_LABEL_FIELDS:
        value = metadata.get(key)
        if value:
            return str(value)
    return UNKNOWN_SOURCE


def create_error_response(message: str,
                          error_type: str = "processing_error",
                          details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create standardized error response structure.

    Args:
        message: Error message for the caller
        error_type: Machine-readable error category
        details: Optional extra context

    Returns:
        Standardized error response dictionary
    """
    response = {
        "success": False,
        "error": message,
        "error_type": error_type,
        "timestamp": int(time.time())
    }
    if details:
        response["details"] = details
    return response
