"""Core utilities and shared infrastructure.

- config: Poll defaults loaded from the environment
- constants: Platform names, default intervals/timeouts, exit codes
- exceptions: Unified error taxonomy
- session: Explicit session context and environment-backed resolution
"""
