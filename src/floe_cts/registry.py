"""Registry of the function universe and of test case registrations.

The registry holds two things:
- the universe: every function identity the project claims to have
- the case registrations: full test name -> FunctionIdentity (+ hooks)

Lifecycle:
    1. Setup phase: register_universe() once, register_case() once per
       declared test case (typically at module import via cts_case).
    2. freeze(): the run phase begins; the universe becomes read-only.
    3. Run phase: lookup() by the test currently executing; report().

Duplicate policy:
    - The same test name registered twice: last write wins (logged).
    - The same FunctionIdentity under different test names: valid, reported
      as a duplicate by the coverage report.

All mutation and lookup is serialized by a single lock; readers get
snapshots, never live aliases.

Example:
    >>> from floe_cts.registry import get_registry
    >>> registry = get_registry()
    >>> registry.register_universe({FunctionIdentity(function_id="A", version="v1")})
    >>> registry.register_case("Suite.case", FunctionIdentity(function_id="A", version="v1"))
    >>> registry.lookup("Suite.case").identity
    FunctionIdentity(function_id='A', version='v1')
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from floe_cts.errors import RegistryFrozenError
from floe_cts.models import CaseRegistration, CheckFunc, FunctionIdentity

if TYPE_CHECKING:
    from floe_cts.coverage import CoverageReport

logger = structlog.get_logger(__name__)

# Module-level default instance and lock
_registry: Registry | None = None
_registry_lock = threading.Lock()


def full_test_name(suite: str, case: str) -> str:
    """Build the full test name used as registration key.

    Args:
        suite: Test suite name (class qualname or module short name).
        case: Test case name.

    Returns:
        "suite.case"
    """
    return f"{suite}.{case}"


class Registry:
    """Process-wide bookkeeping of functions and the tests covering them.

    Registration never raises: a case whose identity is not part of the
    universe is accepted and only surfaces later in the coverage report.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._universe: frozenset[FunctionIdentity] = frozenset()
        # Key: full test name, Value: registration (last write wins)
        self._cases: dict[str, CaseRegistration] = {}
        self._frozen = False

    # -------------------------------------------------------------------------
    # Setup phase
    # -------------------------------------------------------------------------

    def register_universe(self, identities: Iterable[FunctionIdentity]) -> None:
        """Replace the universe of known functions.

        Calling it again before freeze() replaces the previous contents; the
        two sets are not merged.

        Args:
            identities: Every function the project claims to have.

        Raises:
            RegistryFrozenError: If the registry has been frozen.
        """
        universe = frozenset(identities)
        with self._lock:
            if self._frozen:
                logger.error("registry.universe_after_freeze", size=len(universe))
                raise RegistryFrozenError("register_universe")
            replaced = len(self._universe)
            self._universe = universe

        logger.debug(
            "registry.universe_registered",
            size=len(universe),
            replaced=replaced,
        )

    def register_case(
        self,
        test_name: str,
        identity: FunctionIdentity,
        pre_check: CheckFunc | None = None,
        post_check: CheckFunc | None = None,
    ) -> CaseRegistration | None:
        """Record which function a test case covers.

        Never raises: this runs while test modules are imported, so an
        invalid registration (empty test name, non-callable hook) is logged
        and dropped instead of breaking collection of the whole module.

        Args:
            test_name: Full test name ("suite.case").
            identity: The covered function.
            pre_check: Optional hook run before the body.
            post_check: Optional hook run after the body.

        Returns:
            The stored registration, or None if it was rejected.
        """
        try:
            registration = CaseRegistration(
                test_name=test_name,
                identity=identity,
                pre_check=pre_check,
                post_check=post_check,
            )
        except ValidationError as e:
            logger.error(
                "registry.case_rejected",
                test_name=test_name,
                identity=str(identity),
                error_count=e.error_count(),
                errors=[err["msg"] for err in e.errors()],
            )
            return None
        with self._lock:
            previous = self._cases.get(test_name)
            self._cases[test_name] = registration
            frozen = self._frozen

        if previous is not None:
            logger.warning(
                "registry.case_overwritten",
                test_name=test_name,
                previous=str(previous.identity),
                identity=str(identity),
            )
        if frozen:
            logger.warning("registry.case_registered_after_freeze", test_name=test_name)

        logger.debug(
            "registry.case_registered",
            test_name=test_name,
            identity=str(identity),
            hooks=registration.has_hooks,
        )
        return registration

    def freeze(self) -> None:
        """End the setup phase. The universe becomes read-only."""
        with self._lock:
            already = self._frozen
            self._frozen = True
            cases = len(self._cases)
        if not already:
            logger.debug("registry.frozen", cases=cases)

    @property
    def is_frozen(self) -> bool:
        """Check if the registry left its setup phase."""
        with self._lock:
            return self._frozen

    def clear(self, keep_cases: bool = False) -> None:
        """Drop the universe and all registrations, and unfreeze.

        Args:
            keep_cases: Keep the case registrations. Modules already imported
                in this process do not register their cases a second time.
        """
        with self._lock:
            self._universe = frozenset()
            if not keep_cases:
                self._cases.clear()
            self._frozen = False

    # -------------------------------------------------------------------------
    # Run phase
    # -------------------------------------------------------------------------

    def lookup(self, test_name: str) -> CaseRegistration | None:
        """Find the registration of a test case.

        Args:
            test_name: Full test name ("suite.case").

        Returns:
            The registration, or None if the test was not registered.
        """
        with self._lock:
            return self._cases.get(test_name)

    def universe(self) -> frozenset[FunctionIdentity]:
        """Snapshot of the universe."""
        with self._lock:
            return self._universe

    def registrations(self) -> tuple[CaseRegistration, ...]:
        """Snapshot of all registrations, ordered by test name."""
        with self._lock:
            return tuple(self._cases[name] for name in sorted(self._cases))

    def snapshot(self) -> tuple[frozenset[FunctionIdentity], tuple[CaseRegistration, ...]]:
        """Consistent snapshot of universe and registrations under one lock."""
        with self._lock:
            cases = tuple(self._cases[name] for name in sorted(self._cases))
            return self._universe, cases

    def report(self) -> CoverageReport:
        """Compute the coverage report for the current contents."""
        from floe_cts.coverage import compute_coverage_report

        universe, cases = self.snapshot()
        return compute_coverage_report(universe, cases)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cases)

    def __contains__(self, test_name: object) -> bool:
        with self._lock:
            return test_name in self._cases


def get_registry() -> Registry:
    """Get the default registry instance.

    Thread-safe; the instance is created on first access.

    Returns:
        The default Registry.
    """
    global _registry

    # Fast path without locking
    if _registry is not None:
        return _registry

    with _registry_lock:
        # Double-check after acquiring lock
        if _registry is not None:
            return _registry
        _registry = Registry()
        logger.debug("get_registry.initialized")
        return _registry


def _reset_registry() -> None:  # pyright: ignore[reportUnusedFunction]
    """Reset the default registry.

    For tests only; the next get_registry() call creates a fresh instance.
    """
    global _registry

    with _registry_lock:
        _registry = None


__all__ = [
    "Registry",
    "full_test_name",
    "get_registry",
]
