"""Pipeline context entity.

One PipelineContext is created per invocation and passed by reference through
every stage. It owns the target paths, the extracted source text, the LLM
conversation and the test attempt history.
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, TypedDict

from vitestgpt.utils.logging import get_logger

if TYPE_CHECKING:
    from vitestgpt.llm.client import LLMClient

Role = Literal["system", "user", "assistant"]


class ConversationMessage(TypedDict):
    """Single chat message exchanged with the LLM."""

    role: Role
    content: str


@dataclass
class AttemptRecord:
    """Outcome of one test-runner invocation.

    Attributes:
        result_text: Combined stdout and stderr of the run
        exit_code: Process exit code (0 means every test passed)
    """

    result_text: str
    exit_code: int

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"result": self.result_text, "exit_code": self.exit_code}


@dataclass
class PipelineContext:
    """Mutable state for one test-generation run.

    Attributes:
        input_file: Source file containing the target function
        function_name: Name of the function under test
        output_file: Test file to generate
        client: LLM client used for every conversational turn
        system_prompt: System message that always heads the history
        id: Unique run identifier
        should_continue: False once any stage halts the pipeline
        manifest_file: Closest package.json, if any
        manifest_contents: Parsed package.json, if readable
        relative_import: Module specifier from output_file to input_file
        raw_source: Full text of input_file
        isolated_function: Minimal snippet needed to test the function
        language: Source language tag (typescript, tsx, javascript)
        uses_default_export: Whether the function is the default export
        conversation_history: Ordered messages, system prompt first
        testplan: LLM-generated test plan
        test_file_contents: Current generated test file text
        attempts: Test runs in execution order
        message_to_user: Human-readable reason for a halt, if any
        logger: Logger for the LLM exchange (defaults to the package logger)
    """

    input_file: Path
    function_name: str
    output_file: Path
    client: "LLMClient | None" = field(default=None, repr=False)
    system_prompt: str = field(default="", repr=False)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    should_continue: bool = True
    manifest_file: Path | None = None
    manifest_contents: dict[str, Any] | None = field(default=None, repr=False)
    relative_import: str = ""
    raw_source: str = field(default="", repr=False)
    isolated_function: str = ""
    language: str = "typescript"
    uses_default_export: bool = False
    conversation_history: list[ConversationMessage] = field(default_factory=list, repr=False)
    testplan: str = ""
    test_file_contents: str = ""
    attempts: list[AttemptRecord] = field(default_factory=list)
    message_to_user: str | None = None
    logger: logging.Logger | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Normalize paths and seed the conversation with the system prompt."""
        self.input_file = Path(self.input_file)
        self.output_file = Path(self.output_file)
        if self.logger is None:
            self.logger = get_logger()
        if not self.conversation_history:
            self.conversation_history.append(
                {"role": "system", "content": self.system_prompt}
            )

    def halt(self, message: str | None = None) -> None:
        """Stop the pipeline, optionally recording a message for the user."""
        self.should_continue = False
        if message is not None:
            self.message_to_user = message

    def send_human_prompt(
        self,
        prompt: str,
        model: str | None = None,
        use_history: bool = True,
    ) -> str:
        """Send a user prompt to the LLM and record both sides of the exchange.

        The prompt is appended to the history before the call. With
        ``use_history`` the whole history is sent; without it only the system
        prompt and this prompt are sent, but the persistent history still
        receives the prompt and the reply.

        Args:
            prompt: User message text
            model: Model override (defaults to the client's configured model)
            use_history: Whether to send the accumulated conversation

        Returns:
            The assistant's reply text

        Raises:
            LLMError: If the remote call fails
            RuntimeError: If no LLM client is attached
        """
        if self.client is None:
            raise RuntimeError("No LLM client attached to the pipeline context")

        self.logger.debug("Sending human prompt:\n%s", prompt)
        self.conversation_history.append({"role": "user", "content": prompt})

        if use_history:
            messages = list(self.conversation_history)
        else:
            messages = [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ]

        self.logger.info("Waiting for a response from the LLM...")
        response = self.client.chat(messages, model=model)

        self.logger.debug("LLM response:\n%s", response.content)
        self.conversation_history.append({"role": "assistant", "content": response.content})
        return response.content

    def discard_last_assistant_turn(self) -> ConversationMessage | None:
        """Remove the most recent message if it is an assistant turn."""
        if len(self.conversation_history) > 1 and self.conversation_history[-1]["role"] == "assistant":
            return self.conversation_history.pop()
        return None

    @property
    def last_attempt(self) -> AttemptRecord | None:
        return self.attempts[-1] if self.attempts else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging (raw source omitted)."""
        return {
            "id": self.id,
            "continue": self.should_continue,
            "input_file": str(self.input_file),
            "function_name": self.function_name,
            "output_file": str(self.output_file),
            "manifest_file": str(self.manifest_file) if self.manifest_file else None,
            "relative_import": self.relative_import,
            "language": self.language,
            "uses_default_export": self.uses_default_export,
            "isolated_function": self.isolated_function,
            "testplan": self.testplan,
            "test_file_contents": self.test_file_contents,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "conversation_turns": len(self.conversation_history),
            "message_to_user": self.message_to_user,
        }
