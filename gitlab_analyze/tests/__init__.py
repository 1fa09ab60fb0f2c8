"""Tests for gitlab_analyze (run from the repository root: `pytest gitlab_analyze/tests`)."""
