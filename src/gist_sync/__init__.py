"""Synchronize groups of local files and folders with GitHub Gists."""

__version__ = "1.0.0"
