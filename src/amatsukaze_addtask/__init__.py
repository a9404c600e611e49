"""Command-line client that submits encode jobs to an Amatsukaze server."""

__version__ = "0.1.0"
