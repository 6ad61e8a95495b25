"""Shared helpers and progress sinks."""
