"""Async operation orchestration for hosted and self-managed Redis control planes.

Submits mutating REST requests to the Cloud and Enterprise APIs, polls the
returned task or action handle to a terminal state, and reports a single
consistent outcome to the CLI, scripts, and AI tool handlers.
"""

__version__ = "0.1.0"
