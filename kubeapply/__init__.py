"""Templating, command running, locking, leader election and Starlark helpers for Kubernetes configs."""

__version__ = "0.0.28"