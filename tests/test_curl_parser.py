"""Tests for curl command parsing."""
import pytest

from docuploader.errors import MissingIdentifierError, ParseError
from docuploader.utils.curl_parser import DEFAULT_USER_AGENT, parse_curl


class TestIdentifiers:
    def test_extracts_organization_and_project(self, curl_text):
        auth = parse_curl(curl_text)
        assert auth.organization_id == "org-123"
        assert auth.project_id == "proj-456"

    def test_docs_paths(self, curl_text):
        auth = parse_curl(curl_text)
        assert auth.docs_path == "/api/organizations/org-123/projects/proj-456/docs"
        assert auth.doc_path("abc") == "/api/organizations/org-123/projects/proj-456/docs/abc"

    def test_missing_organization(self):
        text = "curl 'https://claude.ai/api/projects/proj-456/docs'"
        with pytest.raises(MissingIdentifierError) as exc_info:
            parse_curl(text)
        assert exc_info.value.which == "organization"
        assert isinstance(exc_info.value, ParseError)

    def test_missing_project(self):
        text = "curl 'https://claude.ai/api/organizations/org-123/docs'"
        with pytest.raises(MissingIdentifierError) as exc_info:
            parse_curl(text)
        assert exc_info.value.which == "project"

    def test_marker_without_trailing_separator_is_missing(self):
        with pytest.raises(MissingIdentifierError):
            parse_curl("https://claude.ai/api/organizations/org-123")


class TestHeaders:
    def test_names_are_lowercased(self, curl_text):
        auth = parse_curl(curl_text)
        assert "cookie" in auth.headers
        assert "Cookie" not in auth.headers
        assert auth.headers["cookie"] == "sessionKey=sk-ant-abc; lastActiveOrg=org-123"

    def test_line_continuation_is_not_part_of_value(self, curl_text):
        auth = parse_curl(curl_text)
        assert auth.headers["accept"] == "*/*"

    def test_derived_headers_overwrite_supplied(self, curl_text):
        auth = parse_curl(curl_text)
        assert auth.headers["content-type"] == "application/json"
        assert auth.headers["origin"] == "https://claude.ai"
        assert auth.headers["referer"] == "https://claude.ai/project/proj-456"

    def test_supplied_user_agent_is_kept(self, curl_text):
        auth = parse_curl(curl_text)
        assert auth.headers["user-agent"] == "TestAgent/1.0"

    def test_default_user_agent_when_absent(self):
        auth = parse_curl("https://claude.ai/api/organizations/o/projects/p/docs")
        assert auth.headers["user-agent"] == DEFAULT_USER_AGENT
        assert set(auth.headers) == {"content-type", "origin", "referer", "user-agent"}

    def test_later_duplicate_overwrites_earlier(self):
        text = "\n".join(
            [
                "curl 'https://claude.ai/api/organizations/o/projects/p/docs'",
                "  -H 'X-Token: first'",
                " -H 'x-token: second'",
            ]
        )
        assert parse_curl(text).headers["x-token"] == "second"

    def test_malformed_header_lines_are_skipped(self):
        text = "\n".join(
            [
                "curl 'https://claude.ai/api/organizations/o/projects/p/docs'",
                "  -H 'no-separator'",
                "  -H 'x-weird: a: b'",
                "  -H 'x-good: yes'",
                "-H 'x-unindented: ignored'",
            ]
        )
        headers = parse_curl(text).headers
        assert headers["x-good"] == "yes"
        assert "no-separator" not in headers
        assert "x-weird" not in headers
        assert "x-unindented" not in headers

    def test_non_ascii_header_value_is_skipped(self, curl_text):
        text = "\n".join([curl_text, "  -H 'x-user-name: José'", "  -H 'x-team: core\tops'"])
        headers = parse_curl(text).headers
        assert "x-user-name" not in headers
        assert headers["x-team"] == "core\tops"
        assert headers["cookie"] == "sessionKey=sk-ant-abc; lastActiveOrg=org-123"

    def test_cookie_flag_fallback(self):
        text = "\n".join(
            [
                "curl 'https://claude.ai/api/organizations/o/projects/p/docs' \\",
                "  -b 'sessionKey=from-flag' \\",
                "  -H 'accept: */*'",
            ]
        )
        assert parse_curl(text).headers["cookie"] == "sessionKey=from-flag"

    def test_cookie_header_wins_over_flag(self):
        text = "\n".join(
            [
                "curl 'https://claude.ai/api/organizations/o/projects/p/docs'",
                "  -H 'cookie: from-header'",
                "  --cookie 'from-flag'",
            ]
        )
        assert parse_curl(text).headers["cookie"] == "from-header"

    def test_headers_are_read_only(self, curl_text):
        auth = parse_curl(curl_text)
        with pytest.raises(TypeError):
            auth.headers["cookie"] = "tampered"

    def test_each_parse_is_independent(self, curl_text):
        first = parse_curl(curl_text)
        second = parse_curl("https://claude.ai/api/organizations/a/projects/b/docs")
        assert first.organization_id == "org-123"
        assert "cookie" not in second.headers

    def test_custom_origin(self, curl_text):
        auth = parse_curl(curl_text, origin="http://localhost:8000")
        assert auth.headers["origin"] == "http://localhost:8000"
        assert auth.headers["referer"] == "http://localhost:8000/project/proj-456"
