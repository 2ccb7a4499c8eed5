"""Cancellation, timeout and progress plumbing shared by the network services."""

from novelshelf.pipeline.cancellation import CancellationToken, TimeoutScope
from novelshelf.pipeline.progress import ProgressChannel

__all__ = ["CancellationToken", "ProgressChannel", "TimeoutScope"]
