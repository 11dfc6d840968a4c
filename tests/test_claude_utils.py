"""Tests for storymapper.lib.claude_utils module."""

import subprocess
from unittest.mock import MagicMock, patch

from storymapper.lib.claude_utils import (
    extract_json_object,
    run_claude,
    strip_markdown_fences,
)


def _completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestRunClaude:
    """Tests for run_claude."""

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_unwraps_json_envelope(self, mock_run):
        mock_run.return_value = _completed(stdout='{"result": "{\\"title\\": \\"x\\"}"}')
        success, response = run_claude("prompt")
        assert success is True
        assert response == '{"title": "x"}'

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_plain_output_passed_through(self, mock_run):
        mock_run.return_value = _completed(stdout="title: x\n")
        assert run_claude("prompt") == (True, "title: x")

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_error_envelope_is_failure(self, mock_run):
        mock_run.return_value = _completed(
            stdout='{"type": "result", "subtype": "error_max_turns", "is_error": true, "result": ""}'
        )
        success, response = run_claude("prompt")
        assert success is False
        assert "error_max_turns" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_prompt_sent_on_stdin(self, mock_run, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "secret")
        mock_run.return_value = _completed(stdout="{}")
        run_claude("the prompt", command="mycli -p --json", timeout=7)

        args, kwargs = mock_run.call_args
        assert args[0] == ["mycli", "-p", "--json"]
        assert kwargs["input"] == "the prompt"
        assert kwargs["timeout"] == 7
        assert "ANTHROPIC_API_KEY" not in kwargs["env"]

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="claude", timeout=5)
        success, response = run_claude("prompt", timeout=5)
        assert success is False
        assert "timed out after 5s" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_cli_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        success, response = run_claude("prompt")
        assert success is False
        assert "CLI not found" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_cli_not_executable(self, mock_run):
        mock_run.side_effect = PermissionError(13, "Permission denied")
        success, response = run_claude("prompt")
        assert success is False
        assert "could not be started" in response
        assert "Permission denied" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_undecodable_output(self, mock_run):
        mock_run.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        success, response = run_claude("prompt")
        assert success is False
        assert "undecodable output" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = _completed(returncode=2, stderr="auth expired")
        success, response = run_claude("prompt")
        assert success is False
        assert "exit 2" in response
        assert "auth expired" in response

    @patch("storymapper.lib.claude_utils.subprocess.run")
    def test_non_zero_exit_without_output(self, mock_run):
        mock_run.return_value = _completed(returncode=1)
        success, response = run_claude("prompt")
        assert success is False
        assert "no output" in response


class TestStripMarkdownFences:
    """Tests for strip_markdown_fences."""

    def test_json_fence(self):
        assert strip_markdown_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_markdown_fences("```\ntitle: x\n```") == "title: x"

    def test_no_fence(self):
        assert strip_markdown_fences('  {"a": 1}  ') == '{"a": 1}'


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_outermost_block(self):
        text = 'Sure! {"a": {"b": 1}} Hope that helps.'
        assert extract_json_object(text) == '{"a": {"b": 1}}'

    def test_none(self):
        assert extract_json_object("no braces here") == ""
