"""
Test suite for Mindmap Studio.

This package contains tests for all core functionality including:
- Outline tree parsing and transcript structuring
- OPML rendering and normalisation
- The document pipeline with fake generators
- Speech-to-text processing with a dummy client
- Configuration management
- The Typer CLI
"""
