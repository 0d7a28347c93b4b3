"""Services for docuploader module."""
from .api_client import DocsAPIClient
from .inclusion import InclusionConfig, InclusionPolicy

__all__ = [
    "DocsAPIClient",
    "InclusionConfig",
    "InclusionPolicy",
]
