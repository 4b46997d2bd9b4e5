"""
Error taxonomy for agent runs.

Every error raised by the engine derives from YachoError. Each carries two
renderings:
- str(err): diagnostic text for logs and developers
- err.user_message: plain-language text that UIs show as an assistant message

Run-level failures never escape GraphExecutor.execute(); they are returned on
ExecutionResult.error so that chat history stays intact and the caller decides
how to present them.
"""

from __future__ import annotations

from typing import Any


class YachoError(Exception):
    """Base class for all engine errors."""

    default_user_message = "Something went wrong while identifying the bird. Please try again."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self._user_message = user_message

    @property
    def user_message(self) -> str:
        return self._user_message or self.default_user_message


class ConfigurationError(YachoError):
    """Missing or invalid configuration, detected before any network call."""

    default_user_message = (
        "The API key is not configured. Set the key in local.properties or the environment "
        "and try again."
    )


class GraphValidationError(YachoError):
    """A graph failed static validation (missing nodes, dead ends, unreachable finish)."""

    def __init__(self, graph_id: str, problems: list[str]) -> None:
        super().__init__(f"Invalid graph '{graph_id}': {'; '.join(problems)}")
        self.graph_id = graph_id
        self.problems = problems


class GraphStuckError(YachoError):
    """No outgoing edge matched the output of a node. Indicates an authoring bug."""

    def __init__(self, node_id: str, value: Any) -> None:
        preview = repr(value)
        if len(preview) > 200:
            preview = preview[:200] + "..."
        super().__init__(f"No outgoing edge of node '{node_id}' matched output {preview}")
        self.node_id = node_id
        self.value = value


class StepLimitExceededError(YachoError):
    """The run executed more nodes than the graph allows."""

    default_user_message = "The conversation went on too long without an answer. Please start over."

    def __init__(self, graph_id: str, max_steps: int) -> None:
        super().__init__(f"Graph '{graph_id}' exceeded {max_steps} steps")
        self.graph_id = graph_id
        self.max_steps = max_steps


class NodeExecutionError(YachoError):
    """An unexpected exception escaped a node body."""

    def __init__(self, node_id: str, cause: BaseException) -> None:
        super().__init__(f"Node '{node_id}' failed: {type(cause).__name__}: {cause}")
        self.node_id = node_id
        self.__cause__ = cause


class ToolError(YachoError):
    """Base class for dispatch-time tool failures."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name

    @property
    def user_message(self) -> str:
        return f"The assistant tried to use the tool '{self.tool_name}' incorrectly: {self}"


class UnknownToolError(ToolError):
    def __init__(self, tool_name: str, available: list[str]) -> None:
        listed = ", ".join(sorted(available)) or "none"
        super().__init__(tool_name, f"Unknown tool '{tool_name}'. Available tools: {listed}")
        self.available = available

    @property
    def user_message(self) -> str:
        return f"The assistant asked for a tool that does not exist ('{self.tool_name}')."


class ArgumentValidationError(ToolError):
    def __init__(self, tool_name: str, errors: list[str]) -> None:
        super().__init__(tool_name, f"Invalid arguments for '{tool_name}': {'; '.join(errors)}")
        self.errors = errors


class SchemaViolationError(YachoError):
    """Structured extraction exhausted its retries without a schema-valid answer."""

    default_user_message = (
        "The identification result could not be read in the expected format. Please try again."
    )

    def __init__(self, schema_name: str, attempts: int, last_error: str, last_output: str) -> None:
        super().__init__(
            f"Could not obtain a valid '{schema_name}' after {attempts} attempt(s): {last_error}"
        )
        self.schema_name = schema_name
        self.attempts = attempts
        self.last_error = last_error
        self.last_output = last_output


class TransportError(YachoError):
    """The model backend failed (network, auth, rate limit, bad response)."""

    default_user_message = "The language model could not be reached. Please try again later."

    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"LLM call to '{model}' failed: {message}")
        self.model = model


class RunCancelledError(YachoError):
    """The run was cancelled. Distinct from failure."""

    default_user_message = "The identification was cancelled."


class UserInputError(YachoError):
    """Misuse of the pending user-input slot (double submit, concurrent wait)."""

    default_user_message = "Please wait for the assistant before sending another message."
