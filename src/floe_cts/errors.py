"""Exception types for floe-cts.

All exceptions inherit from CTSError to enable catch-all error handling.
Faults raised by test bodies and hooks are never re-raised as these types;
they are converted into outcomes (see floe_cts.supervisor and floe_cts.hooks).

Exception Hierarchy:
    CTSError (base)
    ├── RegistryError - Registry misuse
    │   └── RegistryFrozenError - Universe replaced after the setup phase
    ├── UniverseLoadError - Universe file missing or malformed
    ├── ScratchpadError - Scratchpad used outside a test execution
    └── HookPhaseError - Pre-check/post-check/fixture phases failed

Warnings:
    RegistrationAmbiguityWarning - One function covered by several test cases

Example:
    >>> from floe_cts.errors import CTSError, RegistryFrozenError
    >>> try:
    ...     registry.register_universe(functions)
    ... except RegistryFrozenError as e:
    ...     print(f"Too late: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from floe_cts.models import PhaseResult


class CTSError(Exception):
    """Base exception for all floe-cts errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize CTSError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# =============================================================================
# Registry Errors
# =============================================================================


class RegistryError(CTSError):
    """Base class for registry misuse."""


class RegistryFrozenError(RegistryError):
    """The registry left its setup phase and can no longer take a new universe.

    Raised when register_universe() is called after freeze(), i.e. after test
    execution has begun.

    Example:
        >>> registry.freeze()
        >>> registry.register_universe(set())
        Traceback (most recent call last):
        ...
        RegistryFrozenError: Universe cannot be replaced after the registry is frozen
    """

    def __init__(self, operation: str, details: dict[str, Any] | None = None) -> None:
        """Initialize RegistryFrozenError.

        Args:
            operation: Name of the rejected operation.
            details: Additional error context.
        """
        _details = details or {}
        _details["operation"] = operation
        super().__init__(
            "Universe cannot be replaced after the registry is frozen",
            _details,
        )
        self.operation = operation


# =============================================================================
# Configuration Errors
# =============================================================================


class UniverseLoadError(CTSError):
    """A universe file could not be read or validated.

    Attributes:
        path: Path of the universe file (as string).
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize UniverseLoadError.

        Args:
            message: Human-readable error description.
            path: Path of the offending file.
            details: Additional error context.
        """
        _details = details or {}
        if path:
            _details["path"] = path
        super().__init__(message, _details)
        self.path = path


# =============================================================================
# Execution Errors
# =============================================================================


class ScratchpadError(CTSError):
    """The result scratchpad was written outside of a test execution scope."""


class HookPhaseError(CTSError):
    """One or more verification phases of a test case failed.

    Raised by the pytest adapter at the end of teardown so a failing
    pre-check or post-check is reported next to, not instead of, the body's
    own outcome.

    Attributes:
        test_name: Full test name ("suite.case").
        failures: The failed phase results.
    """

    def __init__(self, test_name: str, failures: list[PhaseResult]) -> None:
        """Initialize HookPhaseError.

        Args:
            test_name: Full test name.
            failures: Failed phase results, in execution order.
        """
        lines = [f"{f.phase.value}: {f.message}" for f in failures]
        super().__init__(
            f"Verification failed for {test_name}: " + "; ".join(lines),
        )
        self.test_name = test_name
        self.failures = list(failures)


# =============================================================================
# Warnings
# =============================================================================


class RegistrationAmbiguityWarning(UserWarning):
    """The same function identity is registered by several test cases.

    Multiple tests covering one requirement is valid; the warning flags it for
    human review.
    """


__all__ = [
    "CTSError",
    "HookPhaseError",
    "RegistrationAmbiguityWarning",
    "RegistryError",
    "RegistryFrozenError",
    "ScratchpadError",
    "UniverseLoadError",
]
