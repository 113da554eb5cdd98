"""Test package for the quality orchestration engine."""
