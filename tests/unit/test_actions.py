"""Unit tests for repair directive parsing."""

import pytest

from vitestgpt.pipeline.actions import (
    Exit,
    FixSourceCode,
    FixUnitTest,
    Unrecognized,
    parse_repair_action,
)


class TestParseRepairAction:
    """Tests for parse_repair_action."""

    def test_fix_unit_test(self) -> None:
        """The payload after the marker is the replacement test file."""
        reply = "// fix-unit-test\nimport { it } from 'vitest'\n"

        action = parse_repair_action(reply)

        assert action == FixUnitTest(payload="import { it } from 'vitest'\n")

    def test_fix_source_code(self) -> None:
        """The payload after the marker is the diff."""
        reply = "// fix-source-code\n<<<<<<< HEAD\na\n=======\nb\n>>>>>>> fix\n"

        action = parse_repair_action(reply)

        assert isinstance(action, FixSourceCode)
        assert action.diff.startswith("<<<<<<< HEAD")

    def test_exit_message_is_trimmed(self) -> None:
        """Exit messages are stripped of surrounding whitespace."""
        action = parse_repair_action("// exit because environment missing  \n")

        assert action == Exit(message="because environment missing")

    @pytest.mark.parametrize(
        "reply",
        [
            "//FIX-UNIT-TEST\ncode",
            "   //   Fix-Unit-Test code",
            "\n\n// fix-unit-test\ncode",
        ],
    )
    def test_marker_is_case_and_space_insensitive(self, reply: str) -> None:
        """Markers ignore case and surrounding whitespace."""
        assert isinstance(parse_repair_action(reply), FixUnitTest)

    def test_fenced_reply_is_unwrapped(self) -> None:
        """A code fence around the whole reply is removed before parsing."""
        reply = "```ts\n// fix-unit-test\nexpect(1).toBe(1)\n```"

        action = parse_repair_action(reply)

        assert action == FixUnitTest(payload="expect(1).toBe(1)")

    def test_marker_must_end_at_word_boundary(self) -> None:
        """A marker glued to other text is not a directive."""
        assert isinstance(parse_repair_action("// exiting now"), Unrecognized)
        assert isinstance(parse_repair_action("// fix-unit-tests\ncode"), Unrecognized)

    def test_bare_exit(self) -> None:
        """A marker alone parses with an empty payload."""
        assert parse_repair_action("// exit") == Exit(message="")

    @pytest.mark.parametrize(
        "reply",
        [
            "Here is the fixed test:\n// fix-unit-test\ncode",
            "fix-unit-test\ncode",
            "",
            "# exit",
        ],
    )
    def test_unrecognized(self, reply: str) -> None:
        """Replies without a leading directive are Unrecognized."""
        action = parse_repair_action(reply)

        assert action == Unrecognized(raw=reply)
