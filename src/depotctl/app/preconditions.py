"""Ordered precondition checks run before any action is dispatched.

Every check returns ``None`` when it passes or a :class:`PreconditionFailure`
describing why the request must stop. :class:`PreconditionValidator` runs the
checks in a fixed order and returns the first failure; nothing after it runs.
The only exception-based exit is the connectivity check, which lets the
backend's connection error propagate untouched.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional

from depotctl.app.identity import AdminIdentityResolver, is_attributable
from depotctl.app.session import BackendSession
from depotctl.domain.actions import Action, ActionRegistry
from depotctl.domain.errors import (
    ArgumentValidationError,
    DepotctlError,
    InsufficientPrivilegeError,
    MissingDependencyError,
    UnknownActionError,
)
from depotctl.domain.request import OptionSet, OptionValue, RequestContext
from depotctl.ports.host import HostEnvironment
from depotctl.settings import RuntimeSettings

logger = logging.getLogger(__name__)

SUPPORT_DIR_MODE = 0o755
_UNSIGNED_INT = re.compile(r"[0-9]+")


class FailureKind(Enum):
    UNKNOWN_ACTION = "unknown_action"
    PERMISSION = "permission"
    MISSING_DEPENDENCY = "missing_dependency"
    ARGUMENT = "argument"


_ERROR_TYPES: dict[FailureKind, type[DepotctlError]] = {
    FailureKind.PERMISSION: InsufficientPrivilegeError,
    FailureKind.MISSING_DEPENDENCY: MissingDependencyError,
    FailureKind.ARGUMENT: ArgumentValidationError,
}


@dataclass(frozen=True)
class PreconditionFailure:
    kind: FailureKind
    message: str
    token: str | None = None

    def to_error(self) -> DepotctlError:
        if self.kind is FailureKind.UNKNOWN_ACTION:
            return UnknownActionError(self.token or "")
        return _ERROR_TYPES[self.kind](self.message)


@dataclass(frozen=True)
class ValidationResult:
    context: RequestContext | None
    failure: PreconditionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> RequestContext:
        if self.failure is not None:
            raise self.failure.to_error()
        if self.context is None:
            raise RuntimeError("validation produced neither a context nor a failure")
        return self.context


Check = Callable[[RequestContext], Optional[PreconditionFailure]]


class PreconditionValidator:
    def __init__(
        self,
        registry: ActionRegistry,
        host: HostEnvironment,
        settings: RuntimeSettings,
        identity: AdminIdentityResolver,
        session: BackendSession,
    ) -> None:
        self._registry = registry
        self._host = host
        self._settings = settings
        self._identity = identity
        self._session = session

    def checks(self) -> list[Check]:
        return [
            self.check_root,
            self.check_agent,
            self.check_admin,
            self.check_expiration,
            self.check_targets,
            self.check_connection,
        ]

    def run(
        self,
        token: str,
        options: OptionSet | Mapping[str, OptionValue] | None = None,
        targets: Iterable[str] = (),
    ) -> ValidationResult:
        action, failure = self.resolve_action(token)
        if failure is not None:
            return ValidationResult(context=None, failure=failure)
        context = RequestContext.build(action, options, targets)
        for check in self.checks():
            failure = check(context)
            if failure is not None:
                logger.debug("precondition %s failed: %s", check.__name__, failure.message)
                return ValidationResult(context=context, failure=failure)
        return ValidationResult(context=context)

    def resolve_action(self, token: str) -> tuple[Action | None, PreconditionFailure | None]:
        try:
            action = self._registry.lookup(token)
        except UnknownActionError as exc:
            return None, PreconditionFailure(FailureKind.UNKNOWN_ACTION, str(exc), token=token)
        logger.debug("resolved '%s' to action %s", token, action)
        return action, None

    def check_root(self, context: RequestContext) -> PreconditionFailure | None:
        if self._host.is_elevated():
            self._host.ensure_directory(self._settings.support_dir, SUPPORT_DIR_MODE)
            return None
        if context.action.spec.name in self._registry.allowed_without_root:
            return None
        return PreconditionFailure(
            FailureKind.PERMISSION,
            f"You must be root to use the '{context.action}' action.",
        )

    def check_agent(self, context: RequestContext) -> PreconditionFailure | None:
        agent = self._settings.agent_binary
        if self._host.is_executable(agent):
            return None
        return PreconditionFailure(
            FailureKind.MISSING_DEPENDENCY,
            f"The management agent is missing or not executable: {agent}",
        )

    def check_admin(self, context: RequestContext) -> PreconditionFailure | None:
        admin = self._identity.resolve(context.option("admin"))
        context.bind_admin(admin)
        self._session.backend.apply_environment(admin, context.flag("debug"))
        if context.action.spec.name not in self._registry.needs_admin:
            return None
        if is_attributable(admin):
            return None
        return PreconditionFailure(
            FailureKind.ARGUMENT,
            f"Cannot attribute '{context.action}' to admin '{admin}'. "
            "Please use --admin to provide a valid admin name.",
        )

    def check_expiration(self, context: RequestContext) -> PreconditionFailure | None:
        if context.action is not Action.INSTALL or "expiration" not in context.options:
            return None
        raw = str(context.options["expiration"])
        if not _UNSIGNED_INT.fullmatch(raw) or int(raw) < 0:
            return PreconditionFailure(
                FailureKind.ARGUMENT,
                f"Custom expiration must be a non-negative whole number of days, got '{raw}'.",
            )
        context.convert_option("expiration", int(raw))
        return None

    def check_targets(self, context: RequestContext) -> PreconditionFailure | None:
        spec = context.action.spec
        if spec.arg_kind is None or context.targets:
            return None
        return PreconditionFailure(
            FailureKind.ARGUMENT,
            f"The '{spec.name}' action requires at least one {spec.arg_kind}.",
        )

    def check_connection(self, context: RequestContext) -> PreconditionFailure | None:
        if context.action.spec.name in self._registry.needs_connection:
            self._session.connect()
        return None


__all__ = [
    "FailureKind",
    "PreconditionFailure",
    "PreconditionValidator",
    "SUPPORT_DIR_MODE",
    "ValidationResult",
]
