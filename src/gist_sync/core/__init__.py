"""GitHub Gists transport shared by the CLI and the sync engine."""

from .async_utils import run_sync
from .client import GistClient

__all__ = ["GistClient", "run_sync"]
