"""Orchestrator package - coordinates upload and delete runs."""
from .core import UploadSession
from .pipeline import UploadPipeline
from .progress import ProgressAggregator, fold

__all__ = ["UploadSession", "UploadPipeline", "ProgressAggregator", "fold"]
