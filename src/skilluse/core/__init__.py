"""Logging, errors and other cross-cutting pieces."""
