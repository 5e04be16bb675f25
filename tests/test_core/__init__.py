"""
Core algorithm tests for loglinear-grammar.

Tests for:
- Log-space numerics, indexes and directories
- Feature grid, thetas and the M-step gradient
- Featurized EM driver and optimizer
"""
