"""
Core functionality for Mindmap Studio.

This package contains the main logic for:
- Speech-to-text conversion
- Structuring transcripts into heading-annotated markdown
- Parsing markdown into outline trees
- OPML rendering and normalisation
- HTML mind-map pages
- Configuration management
"""
