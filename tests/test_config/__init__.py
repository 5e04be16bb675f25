"""Tests for configuration management."""
