"""
Token Signal Agent Test Suite

This package contains all tests for the Token Signal Agent, organized by category:
- unit: Unit tests for individual components
- integration: Integration tests for the analysis pipeline and the HTTP API
"""
