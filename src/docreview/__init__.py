"""Docreview - Document review workflow engine.

This package manages the lifecycle of documents submitted for peer review:
automated pre-checks at intake, capacity-aware reviewer assignment, feedback
rounds driven by an explicit state machine, and running reviewer metrics.
"""

__version__ = "0.1.0"
