"""Core session - launches runs on a background worker and tracks their progress."""
from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from ..errors import ParseError, SessionError
from ..models import (
    AuthContext,
    Deleting,
    ProgressState,
    UploadConfig,
    UploadedRecord,
    Uploading,
    UploadOutcome,
)
from ..services.inclusion import InclusionConfig, InclusionPolicy
from ..utils.curl_parser import parse_curl
from ..utils.events import EventChannel
from .file_collector import FileCollector
from .pipeline import ClientFactory, UploadPipeline
from .progress import ProgressAggregator

logger = logging.getLogger(__name__)

WORKER_EVENT_NAME = "Run"

RunFactory = Callable[[EventChannel], Awaitable[List[UploadedRecord]]]
WorkerResult = Union[List[UploadedRecord], BaseException]


class UploadSession:
    """
    Caller-facing facade over one folder and one copied request.

    The foreground owns all state here. A run executes on a single worker
    thread with its own event loop; the only link back is the event channel
    (plus a one-shot hand-off of the uploaded records), drained by ``poll``.

    Usage:
        session = UploadSession()
        session.request_text = curl_text
        session.select_folder(folder)
        session.toggle_section("docs")
        session.start_upload()
        while session.is_busy:
            session.poll()
            time.sleep(0.1)
        print(session.progress.status_text)
    """

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._config = config or UploadConfig()
        self._client_factory = client_factory
        self.request_text = ""
        self._folder: Optional[Path] = None
        self._keep_config: Optional[InclusionConfig] = None
        self._selected_sections: List[str] = []
        self.uploaded_records: List[UploadedRecord] = []
        self.progress = ProgressAggregator()

        self._worker: Optional[threading.Thread] = None
        self._results: Optional["queue.SimpleQueue[WorkerResult]"] = None

    # Folder and sections

    @property
    def folder(self) -> Optional[Path]:
        return self._folder

    @property
    def keep_config(self) -> Optional[InclusionConfig]:
        return self._keep_config

    @property
    def available_sections(self) -> List[str]:
        return list(self._keep_config.sections) if self._keep_config else []

    @property
    def selected_sections(self) -> List[str]:
        return list(self._selected_sections)

    def select_folder(self, folder: Path) -> None:
        """Set the root folder and load its section config, if any."""
        folder = Path(folder).expanduser()
        if not folder.is_dir():
            raise SessionError(f"Not a directory: {folder}")

        self._folder = folder.resolve()
        self._keep_config = InclusionConfig.load(self._folder, self._config.keep_file_name)
        self._selected_sections = []
        logger.info(f"Selected folder: {self._folder}")

    def toggle_section(self, name: str) -> bool:
        """Flip a section on or off. Returns whether it is now selected."""
        if name not in self.available_sections:
            raise SessionError(f"Unknown section: {name}")
        if name in self._selected_sections:
            self._selected_sections.remove(name)
            return False
        self._selected_sections.append(name)
        return True

    def select_sections(self, names: Sequence[str]) -> None:
        unknown = [name for name in names if name not in self.available_sections]
        if unknown:
            raise SessionError(f"Unknown section(s): {', '.join(unknown)}")
        self._selected_sections = list(dict.fromkeys(names))

    def eligible_files(self) -> List[Path]:
        """Dry walk of the selected folder; no request is made."""
        if self._folder is None:
            raise SessionError("No folder selected")
        policy = InclusionPolicy(self._keep_config)
        return [
            path for path in FileCollector.iter_files(self._folder)
            if policy.should_include(path, self._selected_sections)
        ]

    def build_pipeline(self, auth: AuthContext) -> UploadPipeline:
        return UploadPipeline(
            self._folder,
            auth,
            InclusionPolicy(self._keep_config),
            sections=self._selected_sections,
            config=self._config,
            client_factory=self._client_factory,
        )

    # Runs

    @property
    def is_busy(self) -> bool:
        return self._worker is not None

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.progress.error_message = message

    def _parse(self) -> AuthContext:
        try:
            return parse_curl(self.request_text, origin=self._config.base_url)
        except ParseError as e:
            self._fail(f"Error parsing curl command: {e}")
            raise

    def start_upload(self) -> None:
        """
        Upload the selected folder in the background.

        Raises:
            ParseError: request text lacks the organization/project segments
            SessionError: no folder selected or a run is already active
        """
        if self.is_busy:
            raise SessionError("A run is already in progress")

        self.progress.reset()
        self.uploaded_records = []
        auth = self._parse()

        if self._folder is None:
            self._fail("No folder selected")
            raise SessionError("No folder selected")

        pipeline = self.build_pipeline(auth)
        total = pipeline.count_discovered()
        logger.info(f"Found {total} files to process in {self._folder}")
        self._launch(pipeline.run, Uploading(total=total))

    def delete_and_reupload(self) -> None:
        """
        Delete every uploaded record, then upload the folder again.

        Without a selected folder only the delete phase runs.
        """
        if self.is_busy:
            raise SessionError("A run is already in progress")
        if not self.uploaded_records:
            self._fail("No files to delete")
            raise SessionError("No files to delete")

        self.progress.reset()
        auth = self._parse()

        records = list(self.uploaded_records)
        pipeline = self.build_pipeline(auth)
        logger.info(f"Starting deletion of {len(records)} files")
        self._launch(
            lambda sink: pipeline.run_delete_then_upload(records, sink),
            Deleting(total=len(records), then_upload=self._folder is not None),
        )

    def _launch(self, run: RunFactory, initial: ProgressState) -> None:
        channel = EventChannel()
        results: "queue.SimpleQueue[WorkerResult]" = queue.SimpleQueue()

        def target() -> None:
            try:
                records = asyncio.run(run(channel))
            except Exception as e:
                logger.error("Worker failed: %s", e, exc_info=True)
                channel.send(UploadOutcome.error(WORKER_EVENT_NAME, f"Run failed: {e}"))
                results.put(e)
            else:
                results.put(records)

        self.progress.attach(channel, initial)
        self._results = results
        self._worker = threading.Thread(target=target, name="docuploader-worker", daemon=True)
        self._worker.start()

    def poll(self) -> int:
        """
        Drain pending events without blocking.

        Returns:
            Number of events folded
        """
        if self._worker is None:
            return self.progress.drain()

        # Checked before draining: every event is sent before the thread ends
        finished = not self._worker.is_alive()
        count = self.progress.drain()

        if finished:
            self._collect_result()
            self.progress.finish()
            self._worker = None
            self._results = None
        return count

    def _collect_result(self) -> None:
        try:
            result = self._results.get_nowait()
        except queue.Empty:
            return
        if isinstance(result, BaseException):
            # already reported as an error outcome; records stay as they were
            return
        self.uploaded_records = list(result)
        logger.info(f"Run finished with {len(result)} uploaded files tracked")

    def wait(
        self,
        interval: float = 0.1,
        timeout: Optional[float] = None,
        on_update: Optional[Callable[["UploadSession"], None]] = None,
    ) -> ProgressState:
        """Poll until the current run ends. Returns the final state."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            busy = self.is_busy
            if self.poll() and on_update is not None:
                on_update(self)
            if not busy:
                break
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError("Run did not finish in time")
            time.sleep(interval)

        if on_update is not None:
            on_update(self)
        return self.progress.state

    def reset(self) -> None:
        """Forget everything; a still-running worker is detached, not stopped."""
        if self._worker is not None:
            logger.warning("Resetting while a run is active; its results will be discarded")
        self.request_text = ""
        self._folder = None
        self._keep_config = None
        self._selected_sections = []
        self.uploaded_records = []
        self.progress.reset()
        self._worker = None
        self._results = None
