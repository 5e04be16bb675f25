"""Tests for anchored rule scorers and corpus projection."""
