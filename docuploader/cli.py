"""Command line interface for docuploader package."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    RunProgressDisplay,
    render_configuration_summary,
    render_file_list,
    render_history,
    render_sections,
)
from .errors import DocUploaderError, ParseError, SessionError
from .models import UploadConfig
from .orchestrator.core import UploadSession
from .utils.curl_parser import parse_curl

logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is
    provided. Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)
    env_level = os.getenv("LOG_LEVEL")

    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    # unquoted values may carry a trailing comment
    return value.split(" #", 1)[0].rstrip()


def _parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export "):].lstrip()

    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key, _unquote(value)


def _load_env_file(path: Path, override: bool = False) -> List[str]:
    """
    Export the KEY=VALUE pairs of a .env file into the environment.

    Variables already set win unless ``override`` is given.

    Returns:
        Names of the variables that were set
    """
    if not path.is_file():
        raise CLIError(f"env file not found or not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    applied: List[str] = []
    for raw_line in content.splitlines():
        pair = _parse_env_line(raw_line)
        if pair is None:
            continue
        key, value = pair
        if override or key not in os.environ:
            os.environ[key] = value
            applied.append(key)
    return applied


def _resolve_default_env_file(directory: Optional[Path] = None) -> Optional[Path]:
    candidate = (directory or Path.cwd()) / ".env"
    return candidate if candidate.is_file() else None


def _read_request_text(source: Optional[str]) -> str:
    """Read the copied curl command from a file, ``-`` (stdin) or DOCUPLOADER_CURL_FILE."""
    source = source or os.getenv("DOCUPLOADER_CURL_FILE")
    if not source:
        raise CLIError("no curl command given (use --curl-file or DOCUPLOADER_CURL_FILE)")
    if source == "-":
        return sys.stdin.read()

    path = Path(source).expanduser()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read curl file {path}: {exc}") from exc


def _run(session: UploadSession, verbose: bool) -> int:
    display = RunProgressDisplay(verbose=verbose)
    try:
        session.start_upload()
    except (ParseError, SessionError) as exc:
        raise CLIError(str(session.progress.error_message or exc)) from exc

    try:
        session.wait(on_update=display.update)
    finally:
        display.stop()

    display.finish(session)
    render_history(session.progress.history, only_problems=not verbose)
    return 1 if session.progress.has_errors else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docs-up",
        description="Upload a folder to a Claude.ai project using a copied curl command.",
    )
    parser.add_argument("folder", nargs="?", type=Path, help="Folder to upload")
    parser.add_argument(
        "-c",
        "--curl-file",
        default=None,
        help="File holding the copied curl command, or - for stdin",
    )
    parser.add_argument(
        "-s",
        "--section",
        action="append",
        default=[],
        help="Only upload files matching this .claudekeep section (repeatable)",
    )
    parser.add_argument(
        "--list-sections",
        action="store_true",
        help="Print the sections of the folder's .claudekeep and exit",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="List eligible files without uploading",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every file outcome")
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"docs-up {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    env_keys: List[str] = []
    if used_env_file is not None:
        try:
            env_keys = _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )
    if env_keys:
        logger.debug("Loaded %s from %s", ", ".join(env_keys), used_env_file)

    if args.folder is None:
        parser.print_help()
        return 0

    config = UploadConfig.from_env()
    session = UploadSession(config)

    try:
        session.select_folder(args.folder)
        if args.list_sections:
            keep = session.keep_config
            render_sections(session.folder, session.available_sections, keep.patterns if keep else {})
            return 0

        if args.section:
            session.select_sections(args.section)

        if args.dry_run:
            render_file_list(session.folder, session.eligible_files())
            return 0

        session.request_text = _read_request_text(args.curl_file)
        auth = parse_curl(session.request_text, origin=config.base_url)
        render_configuration_summary(
            {
                "Folder": str(session.folder),
                "Organization": auth.organization_id,
                "Project": auth.project_id,
                "Remote": config.base_url,
                "Sections": ", ".join(session.selected_sections) or "(all)",
                "Section Config": "yes" if session.keep_config else "no",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )
        return _run(session, verbose=args.verbose)
    except (CLIError, DocUploaderError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
