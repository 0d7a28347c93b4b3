"""Derive an auth context from a copy-pasted ``curl`` command."""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from ..errors import MissingIdentifierError
from ..models import DEFAULT_BASE_URL, AuthContext

logger = logging.getLogger(__name__)

ORGANIZATION_MARKER = "/organizations/"
PROJECT_MARKER = "/projects/"
HEADER_PREFIXES = ("  -H '", " -H '")
COOKIE_FLAGS = ("--cookie", "-b ")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9a-z]+$")
_HEADER_VALUE_RE = re.compile(r"[\x20-\x7e\t]*")


def _extract_identifier(text: str, marker: str) -> Optional[str]:
    start = text.find(marker)
    if start == -1:
        return None
    remaining = text[start + len(marker):]
    end = remaining.find("/")
    if end == -1:
        return None
    return remaining[:end]


def _strip_header_line(line: str) -> str:
    for prefix in HEADER_PREFIXES:
        if line.startswith(prefix):
            line = line[len(prefix):]
    # bash-style copies end every line with a " \" continuation
    line = line.rstrip()
    if line.endswith("\\"):
        line = line[:-1].rstrip()
    return line.rstrip("'")


def _valid_header(name: str, value: str) -> bool:
    # values must be visible ASCII, space or tab
    return bool(_HEADER_NAME_RE.match(name)) and bool(_HEADER_VALUE_RE.fullmatch(value))


def _extract_headers(text: str) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.startswith(HEADER_PREFIXES):
            continue

        parts = _strip_header_line(line).split(": ")
        if len(parts) != 2:
            logger.debug("Skipping malformed header line: %r", line)
            continue

        name, value = parts[0].lower(), parts[1]
        if _valid_header(name, value):
            headers[name] = value
    return headers


def _extract_cookie(text: str) -> Optional[str]:
    """Pull a cookie passed with ``--cookie``/``-b``; the last such line wins."""
    cookie = None
    for line in text.splitlines():
        if not any(flag in line for flag in COOKIE_FLAGS):
            continue
        start = line.find("'")
        if start == -1:
            continue
        end = line.find("'", start + 1)
        if end == -1:
            continue
        value = line[start + 1:end]
        if _valid_header("cookie", value):
            cookie = value
    return cookie


def parse_curl(text: str, origin: str = DEFAULT_BASE_URL) -> AuthContext:
    """
    Parse raw ``curl`` text into an AuthContext.

    Header extraction is best effort: malformed ``-H`` lines are skipped.
    The derived content-type, origin and referer headers always overwrite
    whatever was supplied; user-agent is only filled in when absent.

    Args:
        text: Multi-line curl command copied from the browser
        origin: Remote origin used for the origin/referer headers

    Returns:
        A fresh AuthContext

    Raises:
        MissingIdentifierError: organization or project segment not found
    """
    organization_id = _extract_identifier(text, ORGANIZATION_MARKER)
    if organization_id is None:
        raise MissingIdentifierError("organization")

    project_id = _extract_identifier(text, PROJECT_MARKER)
    if project_id is None:
        raise MissingIdentifierError("project")

    headers = _extract_headers(text)

    if "cookie" not in headers:
        cookie = _extract_cookie(text)
        if cookie is not None:
            headers["cookie"] = cookie

    headers["content-type"] = "application/json"
    headers["origin"] = origin
    headers["referer"] = f"{origin}/project/{project_id}"
    headers.setdefault("user-agent", DEFAULT_USER_AGENT)

    logger.debug(
        "Parsed curl command: org=%s project=%s headers=%s",
        organization_id,
        project_id,
        sorted(headers),
    )
    return AuthContext(
        organization_id=organization_id,
        project_id=project_id,
        headers=headers,
    )
