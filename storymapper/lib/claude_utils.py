"""
Model CLI invocation for story map generation.

The CLI reads the prompt on stdin. With --output-format json it prints an
envelope like {"type": "result", "is_error": false, "result": "..."}; the
story map is the text under "result".
"""

import json
import logging
import os
import re
import shlex
import subprocess

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "claude -p --output-format json"

# Dropped from the child environment so the CLI falls back to its own login
_SCRUBBED_ENV = ("ANTHROPIC_API_KEY",)

_FENCE_OPEN = re.compile(r'^```[\w-]*\s*$')
_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')


def _unwrap_envelope(stdout: str) -> tuple[bool, str]:
    """Split the CLI's JSON envelope into (success, text).

    Output that is not an envelope is returned unchanged as a success.
    """
    try:
        envelope = json.loads(stdout)
    except json.JSONDecodeError:
        return True, stdout
    if not isinstance(envelope, dict) or "result" not in envelope:
        return True, stdout
    if envelope.get("is_error"):
        return False, f"model reported an error: {envelope.get('result') or envelope.get('subtype')}"
    return True, envelope["result"]


def run_claude(prompt: str, command: str = DEFAULT_COMMAND, timeout: int = 300) -> tuple[bool, str]:
    """Send a prompt to the model CLI.

    Args:
        prompt: Rendered prompt, written to the CLI's stdin
        command: Command line, split with shlex
        timeout: Seconds before the call is abandoned

    Returns:
        (True, response_text) on success, (False, reason) otherwise
    """
    argv = shlex.split(command)
    program = argv[0]
    env = {k: v for k, v in os.environ.items() if k not in _SCRUBBED_ENV}

    logger.debug(f"Running {program} ({len(prompt)} chars of prompt, timeout {timeout}s)")
    try:
        proc = subprocess.run(
            argv,
            input=prompt,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired:
        return False, f"{program} timed out after {timeout}s"
    except FileNotFoundError:
        return False, f"{program} CLI not found. Install: https://claude.ai/claude-code"
    except OSError as e:
        return False, f"{program} could not be started: {e}"
    except UnicodeDecodeError as e:
        return False, f"{program} produced undecodable output: {e}"

    if proc.returncode != 0:
        detail = proc.stderr.strip() or proc.stdout.strip()
        if not detail:
            detail = f"(no output - check '{program} --version' and auth status)"
        return False, f"{program} failed (exit {proc.returncode}): {detail}"

    return _unwrap_envelope(proc.stdout.strip())


def strip_markdown_fences(text: str) -> str:
    """Remove a ```lang ... ``` wrapper around the whole text, if there is one."""
    lines = text.strip().splitlines()
    if lines and _FENCE_OPEN.match(lines[0].strip()):
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
    return "\n".join(lines)


def extract_json_object(text: str) -> str:
    """Return the span from the first '{' to the last '}', or "" if there is none."""
    match = _OBJECT_PATTERN.search(text)
    return match.group(0) if match else ""
