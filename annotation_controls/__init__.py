"""Annotation card controls: vote tallies, vote toggling and action authorization."""

__version__ = "1.0.0"
