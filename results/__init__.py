"""
results package

Live analysis report panel.
"""

from results.panel import ResultsPanel

__all__ = ["ResultsPanel"]
