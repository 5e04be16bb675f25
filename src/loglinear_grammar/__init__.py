"""
loglinear-grammar - EM training and chart posterior scoring for log-linear grammars.

This package provides a featurized EM trainer for log-linear (context, decision)
distributions and an inside-outside based anchored rule scorer for parse pruning.
"""

__version__ = "0.1.0"
