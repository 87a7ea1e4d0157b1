"""
API Module

Flask-based REST API for document ingestion, similarity search and answer
generation.
"""

from .app import create_app

__all__ = ["create_app"]
