"""
DocQA RAG Backend

Document question answering over uploaded files, text and web pages, with
similarity search and LLM-backed answers that degrade to extractive answers
when the model is unavailable.
"""

__version__ = "1.0.0"
