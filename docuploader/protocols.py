"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from typing import Any, Dict, Protocol, runtime_checkable

from .models import RunEvent


@runtime_checkable
class IDocsClient(Protocol):
    """Interface for remote project docs operations."""

    async def create_doc(self, file_name: str, content: str) -> Dict[str, Any]:
        """Create a doc and return the parsed response body."""
        ...

    async def delete_doc(self, uuid: str) -> None:
        """Delete a doc by remote identifier."""
        ...


@runtime_checkable
class IEventSink(Protocol):
    """Sending side handed to the worker; only ever written to."""

    def send(self, event: RunEvent) -> None:
        ...
