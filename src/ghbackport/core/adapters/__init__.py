"""Adapters implementing the core ports with git and gh subprocesses."""
