"""
Sequential upload/delete pipeline.

Runs on the background worker. Every outcome is reported through the event
sink; nothing here touches the caller's progress state.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager, AsyncIterator, Callable, List, Optional, Sequence, Tuple

from ..errors import (
    AuthProbeFailure,
    FileReadError,
    HttpStatusError,
    DocsAPIError,
    ResponseParseError,
    TransportError,
)
from ..models import (
    AuthContext,
    FileRecord,
    Phase,
    PhaseStarted,
    UploadConfig,
    UploadedRecord,
    UploadOutcome,
)
from ..protocols import IDocsClient, IEventSink
from ..services.api_client import DocsAPIClient, redact_headers
from ..services.inclusion import InclusionPolicy
from .file_collector import FileCollector

logger = logging.getLogger(__name__)

PROBE_EVENT_NAME = "Authentication test"
SKIP_REASON = "Not included in selected sections or unsupported type"

FORBIDDEN_MESSAGE = "Access forbidden (403). Your session may have expired. Please update your curl command."
UNAUTHORIZED_MESSAGE = "Unauthorized (401). Your authentication tokens are invalid. Please update your curl command."
PROBE_FORBIDDEN_MESSAGE = (
    "Authentication failed (403 Forbidden). Your session may have expired. "
    "Please update your curl command from Claude.ai."
)
PROBE_UNAUTHORIZED_MESSAGE = (
    "Authentication failed (401 Unauthorized). Your session tokens are invalid. "
    "Please update your curl command from Claude.ai."
)

ClientFactory = Callable[[AuthContext, UploadConfig], AsyncContextManager[IDocsClient]]

# (file, eligible) in walk order
Discovery = List[Tuple[FileRecord, bool]]


def _default_client_factory(auth: AuthContext, config: UploadConfig) -> DocsAPIClient:
    return DocsAPIClient(auth, base_url=config.base_url, timeout=config.timeout)


def read_text(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Failed to read file: {e}") from e


def classify_upload_failure(exc: HttpStatusError) -> str:
    if exc.is_unauthorized:
        return UNAUTHORIZED_MESSAGE
    if exc.is_forbidden:
        return FORBIDDEN_MESSAGE
    return f"Upload failed with status: {exc.status_code}. Response: {exc.body}"


def classify_probe_failure(exc: HttpStatusError) -> str:
    """Credential-shaped failures may also surface only in the body."""
    if exc.is_forbidden or "403" in exc.body:
        return PROBE_FORBIDDEN_MESSAGE
    if exc.is_unauthorized or "401" in exc.body:
        return PROBE_UNAUTHORIZED_MESSAGE
    return f"Upload failed with status: {exc.status_code}. Response: {exc.body}"


class UploadPipeline:
    """
    Uploads the eligible files of a folder one at a time.

    Usage:
        pipeline = UploadPipeline(folder, auth, policy, sections=["docs"])
        total = pipeline.count_discovered()
        records = await pipeline.run(channel)
        await pipeline.run_delete(records, channel)
    """

    def __init__(
        self,
        root: Optional[Path],
        auth: AuthContext,
        policy: Optional[InclusionPolicy] = None,
        sections: Sequence[str] = (),
        config: Optional[UploadConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._root = Path(root) if root is not None else None
        self._auth = auth
        self._policy = policy or InclusionPolicy()
        self._sections = tuple(sections)
        self._config = config or UploadConfig()
        self._client_factory = client_factory or _default_client_factory

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def discover(self) -> Discovery:
        """Walk the root and tag each file with its inclusion decision."""
        if self._root is None:
            return []
        return [
            (FileRecord.from_path(path), self._policy.should_include(path, self._sections))
            for path in FileCollector.iter_files(self._root)
        ]

    def count_eligible(self) -> int:
        """Dry walk: number of files that would be uploaded."""
        return sum(1 for _, eligible in self.discover() if eligible)

    def count_discovered(self) -> int:
        """Dry walk: number of files that will produce an outcome."""
        return len(self.discover())

    @asynccontextmanager
    async def _open_client(self) -> AsyncIterator[IDocsClient]:
        async with self._client_factory(self._auth, self._config) as client:
            yield client

    async def run(self, sink: IEventSink) -> List[UploadedRecord]:
        """Upload every eligible file, reporting one outcome per discovered file."""
        discovery = self.discover()
        async with self._open_client() as client:
            return await self._upload_all(client, discovery, sink)

    async def run_delete(self, records: Sequence[UploadedRecord], sink: IEventSink) -> List[UploadedRecord]:
        """
        Delete each record remotely. No probe is performed.

        Returns:
            Records whose delete failed and still exist remotely
        """
        async with self._open_client() as client:
            return await self._delete_all(client, records, sink)

    async def run_delete_then_upload(
        self,
        records: Sequence[UploadedRecord],
        sink: IEventSink,
    ) -> List[UploadedRecord]:
        """
        Delete all records, then re-upload the folder if one is set.

        Both phases report into the same sink; the upload phase is announced
        with a PhaseStarted event carrying its total.

        Returns:
            Records that failed to delete followed by the new uploads
        """
        async with self._open_client() as client:
            remaining = await self._delete_all(client, records, sink)
            logger.info("Deletion completed, %d records could not be deleted", len(remaining))

            if self._root is None:
                return remaining

            discovery = self.discover()
            sink.send(PhaseStarted(Phase.UPLOADING, len(discovery)))
            logger.info(f"Re-uploading {self._root}")
            return remaining + await self._upload_all(client, discovery, sink)

    async def _upload_all(
        self,
        client: IDocsClient,
        discovery: Discovery,
        sink: IEventSink,
    ) -> List[UploadedRecord]:
        uploaded: List[UploadedRecord] = []
        eligible = [record for record, ok in discovery if ok]
        logger.info("Found %d supported files out of %d", len(eligible), len(discovery))

        if eligible:
            try:
                await self._probe(client, eligible[0])
            except AuthProbeFailure as e:
                logger.error("Authentication test failed: %s", e)
                sink.send(UploadOutcome.error(PROBE_EVENT_NAME, str(e)))
                return uploaded

        for file, ok in discovery:
            sink.send(UploadOutcome.processing(file.name))
            if not ok:
                sink.send(UploadOutcome.skipped(file.name, SKIP_REASON))
                continue

            record = await self._upload_one(client, file, sink)
            if record is not None:
                uploaded.append(record)

        logger.info("Upload completed: %d of %d files uploaded", len(uploaded), len(eligible))
        return uploaded

    async def _probe(self, client: IDocsClient, file: FileRecord) -> None:
        """Create a truncated copy of ``file`` and remove it again."""
        try:
            content = read_text(file.path)
        except FileReadError as e:
            raise AuthProbeFailure(str(e)) from e
        content = content[: self._config.probe_length] + "..."

        logger.debug("Testing authentication with headers: %s", redact_headers(self._auth.headers))
        try:
            body = await client.create_doc(file.name, content)
        except HttpStatusError as e:
            logger.debug("Authentication test response: %s %s", e.status_code, e.body)
            raise AuthProbeFailure(classify_probe_failure(e)) from e
        except TransportError as e:
            raise AuthProbeFailure(f"Failed to send request: {e}") from e
        except ResponseParseError as e:
            logger.warning("Authentication test passed but response was unreadable: %s", e)
            return

        uuid = body["uuid"]
        try:
            await client.delete_doc(uuid)
            logger.debug("Cleaned up test file with UUID: %s", uuid)
        except DocsAPIError as e:
            logger.warning("Could not clean up test file %s: %s", uuid, e)

    async def _upload_one(
        self,
        client: IDocsClient,
        file: FileRecord,
        sink: IEventSink,
    ) -> Optional[UploadedRecord]:
        name = file.name
        try:
            content = read_text(file.path)
        except FileReadError as e:
            sink.send(UploadOutcome.error(name, str(e)))
            return None

        try:
            body = await client.create_doc(name, content)
        except HttpStatusError as e:
            sink.send(UploadOutcome.error(name, classify_upload_failure(e)))
            return None
        except ResponseParseError as e:
            sink.send(UploadOutcome.error(name, f"Failed to parse upload response: {e}"))
            return None
        except TransportError as e:
            sink.send(UploadOutcome.error(name, f"Failed to send request: {e}"))
            return None

        logger.info("Uploaded %s (uuid: %s)", name, body["uuid"])
        sink.send(UploadOutcome.success(name))
        return UploadedRecord(name=name, remote_id=body["uuid"])

    async def _delete_all(
        self,
        client: IDocsClient,
        records: Sequence[UploadedRecord],
        sink: IEventSink,
    ) -> List[UploadedRecord]:
        remaining: List[UploadedRecord] = []
        for record in records:
            sink.send(UploadOutcome.processing(record.name))
            logger.info("Deleting '%s' with ID: %s", record.name, record.remote_id)
            try:
                await client.delete_doc(record.remote_id)
            except HttpStatusError as e:
                sink.send(UploadOutcome.error(record.name, f"Failed to delete with status: {e.status_code}"))
                remaining.append(record)
                continue
            except TransportError as e:
                sink.send(UploadOutcome.error(record.name, f"Failed to send delete request: {e}"))
                remaining.append(record)
                continue
            sink.send(UploadOutcome.success(record.name))
        return remaining
