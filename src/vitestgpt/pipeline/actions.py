"""Repair directives returned by the LLM after a failed test run.

A reply must start with one directive marker, optionally inside a Markdown
code fence wrapping the whole reply:

    // fix-unit-test      rest is the replacement test file
    // fix-source-code    rest is a conflict-marker diff of the source
    // exit               rest is a message for the user

Markers are case-insensitive and must be followed by whitespace or the end
of the text. Anything else parses to Unrecognized.
"""

import re
from dataclasses import dataclass

from vitestgpt.llm.client import strip_code_fences

_DIRECTIVE = re.compile(
    r"^\s*//\s*(?P<action>fix-unit-test|fix-source-code|exit)(?=\s|$)\s*",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class FixUnitTest:
    """Replace the generated test file with ``payload``."""

    payload: str


@dataclass(frozen=True)
class FixSourceCode:
    """Apply ``diff`` to the source file and wait for a human to resolve it."""

    diff: str


@dataclass(frozen=True)
class Exit:
    """Stop the pipeline and show ``message`` to the user."""

    message: str


@dataclass(frozen=True)
class Unrecognized:
    """Reply without a valid leading directive."""

    raw: str


RepairAction = FixUnitTest | FixSourceCode | Exit | Unrecognized


def parse_repair_action(reply: str) -> RepairAction:
    """Parse an LLM reply into a RepairAction."""
    text = strip_code_fences(reply)

    match = _DIRECTIVE.match(text)
    if match is None:
        return Unrecognized(raw=reply)

    action = match.group("action").lower()
    payload = text[match.end() :]

    if action == "fix-unit-test":
        return FixUnitTest(payload=payload)
    if action == "fix-source-code":
        return FixSourceCode(diff=payload)
    return Exit(message=payload.strip())
