"""Tests for the talent search pipeline orchestrator."""
