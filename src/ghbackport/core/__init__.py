"""Backport core: orchestration, ports, errors and diagnostics."""
