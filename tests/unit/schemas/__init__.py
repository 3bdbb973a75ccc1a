"""Tests for the stage contracts and run history."""
