"""Command line interface for skilluse."""
