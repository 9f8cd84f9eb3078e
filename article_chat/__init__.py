"""
Article Chat System

Ingests news articles, analyzes them with a generative model, stores them for
semantic search, and answers natural-language questions about them by turning
each question into a structured plan and executing the matching strategy.
"""

__version__ = "0.2.0"
