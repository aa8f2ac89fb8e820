"""End-to-end handling of one depotctl invocation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from depotctl.app.dispatcher import DispatchOutcome, Dispatcher
from depotctl.app.identity import AdminIdentityResolver
from depotctl.app.preconditions import PreconditionValidator
from depotctl.app.session import BackendSession
from depotctl.domain.actions import REGISTRY, ActionRegistry
from depotctl.domain.request import OptionSet, OptionValue, RequestContext
from depotctl.ports.backend import PackageBackend
from depotctl.ports.host import HostEnvironment
from depotctl.settings import RuntimeSettings
from depotctl.utils.log_config import LogConfig
from depotctl.utils.telemetry import record_action

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Process-wide collaborators, created once at startup."""

    settings: RuntimeSettings
    log_config: LogConfig
    host: HostEnvironment
    backend: PackageBackend
    registry: ActionRegistry = field(default=REGISTRY)


def run_invocation(
    runtime: Runtime,
    token: str,
    options: OptionSet | Mapping[str, OptionValue] | None = None,
    targets: Iterable[str] = (),
) -> DispatchOutcome:
    """Validate and dispatch one action; the backend is torn down on every path."""
    started = time.perf_counter()
    context: RequestContext | None = None
    with BackendSession(runtime.backend) as session:
        validator = PreconditionValidator(
            runtime.registry,
            runtime.host,
            runtime.settings,
            AdminIdentityResolver(runtime.host),
            session,
        )
        try:
            result = validator.run(token, options, targets)
            context = result.context
            outcome = Dispatcher(session.backend, runtime.registry).dispatch(result.unwrap())
        except BaseException as exc:
            _audit(runtime, token, context, status="failed", started=started, error=exc)
            raise
    _audit(runtime, token, context, status="success", started=started)
    return outcome


def _audit(
    runtime: Runtime,
    token: str,
    context: RequestContext | None,
    *,
    status: str,
    started: float,
    error: BaseException | None = None,
) -> None:
    try:
        record_action(
            runtime.settings,
            token=token,
            action=str(context.action) if context is not None else None,
            admin=context.admin if context is not None else None,
            targets=context.targets if context is not None else (),
            status=status,
            duration_ms=(time.perf_counter() - started) * 1000,
            error=error,
        )
    except OSError as exc:
        logger.debug("audit event not written: %s", exc)


__all__ = ["Runtime", "run_invocation"]
