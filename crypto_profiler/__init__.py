"""
Crypto Profiler: sanctions watchlist engine and wallet risk investigator.

Two halves share one SQLite store: the watchlist engine keeps a local copy of
the sanctions feed fresh and answers exact-match lookups over HTTP; the
investigator combines that lookup with behavioral heuristics into an
explainable, categorized risk score.
"""

__version__ = "0.1.0"
