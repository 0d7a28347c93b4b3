"""
Docuploader - bulk upload of a local folder to a Claude.ai project.

Credentials come from a ``curl`` command copied out of the browser's
network panel rather than a login flow.

Usage:
    from docuploader import UploadSession

    session = UploadSession()
    session.request_text = curl_text
    session.select_folder(Path("~/code/my-app"))
    session.select_sections(["docs"])   # only if the folder has a .claudekeep
    session.start_upload()
    session.wait()
    print(session.progress.status_text)

    # Replace everything uploaded above with the current folder contents
    session.delete_and_reupload()
    session.wait()

Lower level:
    auth = parse_curl(curl_text)
    pipeline = UploadPipeline(folder, auth, InclusionPolicy(InclusionConfig.load(folder)))
    records = asyncio.run(pipeline.run(EventChannel()))
"""
from .errors import (
    AuthProbeFailure,
    DocUploaderError,
    MissingIdentifierError,
    ParseError,
    SessionError,
)
from .models import (
    AuthContext,
    Completed,
    Deleting,
    NotStarted,
    OutcomeKind,
    UploadConfig,
    UploadedRecord,
    Uploading,
    UploadOutcome,
)
from .orchestrator import ProgressAggregator, UploadPipeline, UploadSession, fold
from .services import DocsAPIClient, InclusionConfig, InclusionPolicy
from .utils.curl_parser import parse_curl
from .utils.events import EventChannel

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadSession",
    "UploadPipeline",
    "ProgressAggregator",
    "fold",
    "parse_curl",
    "EventChannel",
    # Models
    "AuthContext",
    "UploadConfig",
    "UploadOutcome",
    "OutcomeKind",
    "UploadedRecord",
    "NotStarted",
    "Uploading",
    "Deleting",
    "Completed",
    # Services
    "DocsAPIClient",
    "InclusionConfig",
    "InclusionPolicy",
    # Errors
    "DocUploaderError",
    "ParseError",
    "MissingIdentifierError",
    "AuthProbeFailure",
    "SessionError",
]
