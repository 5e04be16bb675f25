"""Tests for the reference grammar, charts and label projections."""
