"""Custom exceptions for the typed LLM client."""

from typing import Any


class TypedLLMException(Exception):
    """Base exception for the typed LLM client.

    All custom exceptions in this package should inherit from this base class.
    """

    pass


class ConfigurationException(TypedLLMException):
    """Raised when configuration errors occur.

    This exception is raised when:
    - Required configuration is missing
    - Invalid configuration values are provided
    - Environment setup is incorrect

    Attributes:
        config_key: The configuration key that caused the error
        config_value: The invalid configuration value
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_value: str | None = None,
    ):
        super().__init__(message)
        self.config_key = config_key
        self.config_value = config_value


class SchemaDefinitionError(TypedLLMException, ValueError):
    """Raised when a schema node is constructed with an invalid definition."""

    pass


class ConstraintMismatchError(TypedLLMException, TypeError):
    """Raised when a constraint is applied to a schema of the wrong kind.

    Attributes:
        schema_kind: Kind of the schema node the constraint was applied to
        constraint: The constraint that could not be applied
    """

    def __init__(self, schema_kind: str, constraint: Any):
        super().__init__(
            f"Constraint {constraint!r} cannot be applied to a {schema_kind} schema"
        )
        self.schema_kind = schema_kind
        self.constraint = constraint


class StructuredContentError(TypedLLMException):
    """Raised when text cannot be parsed into, or rendered from, structured content."""

    pass


class DecodingError(TypedLLMException):
    """Base class for failures decoding structured content into typed values."""

    pass


class TypeMismatch(DecodingError):
    """Raised when a structured value is not of the expected kind.

    Attributes:
        expected: Name of the expected kind
        actual: Name of the kind actually found
    """

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Type mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class MissingRequiredProperty(DecodingError):
    """Raised when a required object property is absent.

    Attributes:
        name: Name of the missing property
    """

    def __init__(self, name: str):
        super().__init__(f"Missing required property '{name}'")
        self.name = name


class InvalidIntegerValue(DecodingError):
    """Raised when a number with a fractional part is read as an integer.

    Attributes:
        value: The offending number
    """

    def __init__(self, value: float):
        super().__init__(f"Value {value!r} is not a valid integer")
        self.value = value


class SchemaValidationException(DecodingError):
    """Raised when a decoded value violates its declared constraints.

    This exception is raised when:
    - Pydantic model validation fails after structural decoding
    - A value falls outside a declared range, length or pattern

    Attributes:
        schema: The schema (or model name) that failed validation
        response_text: The text that failed to validate
        validation_errors: List of validation error details
    """

    def __init__(
        self,
        message: str,
        schema: str | None = None,
        response_text: str | None = None,
        validation_errors: list[str] | None = None,
    ):
        super().__init__(message)
        self.schema = schema
        self.response_text = response_text
        self.validation_errors = validation_errors or []


class ConversationStateError(TypedLLMException):
    """Raised when a conversation history is not in a state that allows a reply."""

    pass


class ToolNotFound(TypedLLMException):
    """Raised when the model requests a tool that is not available.

    Attributes:
        name: The requested tool name
    """

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class ToolExecutionFailed(TypedLLMException):
    """Raised when a tool handler raises during execution.

    Attributes:
        tool: Name of the tool that failed
        underlying: The exception raised by the tool handler
    """

    def __init__(self, tool: str, underlying: BaseException):
        super().__init__(f"Tool '{tool}' failed: {underlying}")
        self.tool = tool
        self.underlying = underlying


class ToolLoopLimitExceeded(TypedLLMException):
    """Raised when a caller-imposed turn limit is reached without a final answer.

    Attributes:
        max_turns: The limit that was reached
    """

    def __init__(self, max_turns: int):
        super().__init__(
            f"Max tool-call turns ({max_turns}) reached without a final response."
        )
        self.max_turns = max_turns


class BackendError(TypedLLMException):
    """Raised by backend adapters when the provider call fails.

    This exception is raised when:
    - API authentication fails
    - Rate limits are exceeded
    - Provider-specific API errors occur
    - The provider response cannot be interpreted

    Attributes:
        underlying: The original exception from the provider, if any
        provider: The provider that caused the error
        model: The model that was being used
    """

    def __init__(
        self,
        message: str,
        underlying: BaseException | None = None,
        provider: str | None = None,
        model: str | None = None,
    ):
        super().__init__(message)
        self.underlying = underlying
        self.provider = provider
        self.model = model


class CancellationRequested(TypedLLMException):
    """Signals a deliberate early exit rather than a failure.

    Tool handlers or callers may raise it to stop a generation. The tool loop
    re-raises it untouched, and no history from the interrupted turn is kept.
    """

    pass
