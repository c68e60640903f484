"""Module defining custom exceptions for the zap application."""

from __future__ import annotations

from typing import Any, Self

# Exit Codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2


class ZapError(Exception):
    """Base exception class with context propagation.

    All exceptions in zap should inherit from this class.
    Context is a dictionary that accumulates relevant information
    as the exception propagates up the call stack.

    Example:
        raise ZapError("An error occurred", context={"backend": "apt"})

        # Or with context propagation
        try:
            ...
        except ZapError as e:
            raise e.with_context(operation="install")
    """
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def with_context(self, **new_context: Any) -> Self:
        """Merge additional context into the exception and return it.

        Args:
            **new_context: Additional context to add to the exception.

        Returns:
            The same exception instance with merged context.
        """
        self.context.update(new_context)
        return self

    def __str__(self) -> str:
        """String representation of the exception including context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class UserError(ZapError):
    """Errors caused by user actions or inputs.

    These errors indicate that the user has made a mistake or provided
    invalid input, and should not be retried without correction.

    CLI should display helpful messages to guide the user.
    """
    pass


class SystemError(ZapError):
    """Errors due to system-level issues.

    These errors indicate problems with the host environment, such as
    missing package managers or tools producing output we cannot read.

    These errors may require user intervention or system fixes, and
    CLI should display diagnostic information for troubleshooting.
    """
    pass


## Specific Exceptions ##

class UnknownBackendError(UserError):
    """The requested backend identifier is not in the backend table."""
    def __init__(
        self,
        message: str | None = None,
        backend: str | None = None,
        known: list[str] | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if backend:
            ctx["backend"] = backend
        if known:
            ctx["known"] = ", ".join(known)

        if message is None:
            message = f"Unknown backend '{backend or 'unknown'}'"

        super().__init__(message, context=ctx)


class NoBackendAvailableError(SystemError):
    """Neither detection nor bootstrap produced a usable backend."""
    def __init__(
        self,
        message: str | None = None,
        candidates: list[str] | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if candidates is not None:
            ctx["candidates"] = ", ".join(candidates) or "none"

        if message is None:
            message = "No supported package manager is available on this system"

        super().__init__(message, context=ctx)


class BootstrapDeclinedError(UserError):
    """The user did not consent to installing a missing tool.

    Not fatal on its own: the selector reports NoBackendAvailableError.
    """
    def __init__(
        self,
        message: str | None = None,
        backend: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if backend:
            ctx["backend"] = backend

        if message is None:
            message = f"Installation of {backend or 'the backend'} was declined"

        super().__init__(message, context=ctx)


class BootstrapFailedError(SystemError):
    """A bootstrap recipe ran but the tool is still unusable.

    Typically indicates:
        - No installer for the runtime exists on this host
        - The installer exited with an error
        - The tool was installed outside the current PATH
    """
    def __init__(
        self,
        message: str | None = None,
        backend: str | None = None,
        reason: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if backend:
            ctx["backend"] = backend
        if reason:
            ctx["reason"] = reason

        if message is None:
            message = f"Bootstrap of {backend or 'backend'} failed: {reason or 'unknown reason'}"

        self.reason = reason
        super().__init__(message, context=ctx)


class UnsupportedOperationError(UserError):
    """The backend has no command for the requested operation."""
    def __init__(
        self,
        message: str | None = None,
        backend: str | None = None,
        operation: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if backend:
            ctx["backend"] = backend
        if operation:
            ctx["operation"] = operation

        if message is None:
            message = f"{backend or 'This backend'} does not support '{operation or 'unknown'}'"

        super().__init__(message, context=ctx)


class BackendParseError(SystemError):
    """Backend output did not match the expected shape.

    The raw output is kept on the exception so it can be shown or logged
    without re-running the command.
    """
    def __init__(
        self,
        message: str | None = None,
        backend: str | None = None,
        raw_output: str = "",
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if backend:
            ctx["backend"] = backend

        if message is None:
            message = f"Could not parse output from {backend or 'backend'}"

        self.raw_output = raw_output
        super().__init__(message, context=ctx)


class ProcessExecutionError(SystemError):
    """A backend process ran but exited with a failure code."""
    def __init__(
        self,
        message: str | None = None,
        command: str | None = None,
        returncode: int | None = None,
        error: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if command:
            ctx["command"] = command
        if returncode is not None:
            ctx["returncode"] = returncode
        ctx["error"] = error or ""

        if message is None:
            message = f"Command failed with exit code {returncode if returncode is not None else 'unknown'}"

        self.returncode = returncode
        super().__init__(message, context=ctx)


class PackageNotFoundError(UserError):
    """Requested package was not found by the backend.

    This is UserError - do not retry without changing the package name.
    """
    def __init__(
        self,
        message: str | None = None,
        package: str | None = None,
        backend: str | None = None,
        context: dict[str, Any] | None = None
    ) -> None:
        ctx = context or {}
        if package:
            ctx["package"] = package
        if backend:
            ctx["backend"] = backend

        if message is None:
            message = f"Package '{package or 'unknown'}' not found"

        super().__init__(message, context=ctx)


# CLI Error Message Templates

ERROR_TEMPLATES = {
    UnknownBackendError: (
        "❌ Unknown backend: {backend}\n"
        "   Known backends: {known}"
    ),
    NoBackendAvailableError: (
        "❌ {message}\n"
        "   Tried: {candidates}\n"
        "   Use -b <backend> to pick one explicitly, or 'zap managers' to see what is installed"
    ),
    BootstrapFailedError: (
        "⚠️ Could not set up {backend}: {reason}"
    ),
    UnsupportedOperationError: (
        "❌ {backend} does not support '{operation}'"
    ),
    BackendParseError: (
        "⚠️ {message}\n"
        "   The tool's output format may have changed; run with --verbose for details"
    ),
    ProcessExecutionError: (
        "⚠️ Command failed: {command}\n"
        "   Exit Code: {returncode}\n"
        "   Error: {error}"
    ),
    PackageNotFoundError: (
        "❌ Package Not Found: {package}\n"
        "   Suggestion: Try 'zap search {package}' to find similar packages"
    ),
    UserError: (
        "❌ {message}"
    ),
    SystemError: (
        "⚠️ System error: {message}\n"
        "   Please check your system configuration and try again"
    ),
    ZapError: (
        "❌ {message}"
    ),
}


def format_error_message(error: ZapError) -> str:
    """Formats an error message for CLI display based on the error type.

    Args:
        error: The ZapError instance to format.

    Returns:
        A formatted string message for CLI display.
    """
    template = ERROR_TEMPLATES.get(type(error), ERROR_TEMPLATES[ZapError])
    try:
        return template.format(message=error.message, **getattr(error, "context", {}))
    except KeyError:
        return f"❌ {error.message}"


def exit_code_for(error: BaseException) -> int:
    """Map an exception to the process exit code.

    A failing backend process propagates its own return code.
    """
    if isinstance(error, ProcessExecutionError) and error.returncode:
        return error.returncode
    if isinstance(error, UserError):
        return EXIT_USER_ERROR
    return EXIT_SYSTEM_ERROR
