"""Routing of a validated request to exactly one backend operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, assert_never

from depotctl.app.help import render_help
from depotctl.domain.actions import Action, ActionRegistry
from depotctl.domain.request import RequestContext
from depotctl.ports.backend import PackageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOutcome:
    action: Action
    payload: Any


class Dispatcher:
    def __init__(self, backend: PackageBackend, registry: ActionRegistry) -> None:
        self._backend = backend
        self._registry = registry

    def dispatch(self, context: RequestContext) -> DispatchOutcome:
        action = context.action
        logger.info("dispatching %s targets=%s", action, list(context.targets))
        return DispatchOutcome(action, self._route(context))

    def _route(self, context: RequestContext) -> Any:
        backend = self._backend
        targets = context.targets
        options = context.options
        match context.action:
            case Action.HELP:
                return render_help(self._registry, targets)
            case Action.INSTALL:
                return backend.install(targets, options)
            case Action.UNINSTALL:
                return backend.uninstall(targets, options)
            case Action.SYNC:
                return backend.sync(options)
            case Action.DEQUEUE:
                return backend.dequeue_pending(targets)
            case Action.FREEZE:
                return backend.freeze(targets)
            case Action.THAW:
                return backend.thaw(targets)
            case Action.FORGET:
                return backend.forget(targets)
            case Action.LIST_AVAILABLE:
                return backend.list_available(context.flag("force"))
            case Action.LIST_INSTALLED:
                return backend.list_installed()
            case Action.LIST_MANUAL:
                return backend.list_manual()
            case Action.LIST_PILOTS:
                return backend.list_pilots()
            case Action.LIST_FROZEN:
                return backend.list_frozen()
            case Action.LIST_QUEUE:
                return backend.list_pending_queue()
            case Action.LIST_DETAILS:
                return backend.list_details(targets)
            case Action.LIST_FILES:
                return backend.list_files(targets)
            case Action.QUERY_FILE:
                return backend.query_files(targets)
            case _:
                assert_never(context.action)


__all__ = ["DispatchOutcome", "Dispatcher"]
