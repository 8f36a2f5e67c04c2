"""Test suite for the worldmaps pipeline.

This package contains:
- Unit tests for individual modules
- Integration tests for a complete pipeline run
"""
