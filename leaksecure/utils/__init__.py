"""Shared utilities: configuration, logging and resilience primitives."""
