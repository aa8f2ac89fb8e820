"""Usage and help text built from the action registry."""

from __future__ import annotations

from textwrap import dedent
from typing import Sequence

from depotctl import __version__
from depotctl.domain.actions import Action, ActionRegistry
from depotctl.domain.errors import UnknownActionError

USAGE = "Usage: depotctl <action> [target ...] [options]"

OPTIONS_HELP = dedent(
    """
    Options:
      -H, --help                 Show this help, or help for one action
          --version              Show the depotctl version
          --quiet                Only report errors
          --verbose              Report progress
          --debug                Report everything; implies --verbose
          --admin NAME           Admin name recorded for installs and uninstalls
          --expiration DAYS      Custom pilot expiration in days (install)
          --force                Reinstall installed packages; refresh cached lists
          --freeze               Freeze installed packages against sync updates
          --puppies              Install queued reboot packages now / list them
          --no-puppy-notification  Do not notify the user about pending reboots
    """
).strip()

LEGEND = "Markers: R=needs root, A=needs --admin attribution, C=contacts the server"


def version_banner() -> str:
    return f"depotctl {__version__}"


def _markers(action: Action) -> str:
    spec = action.spec
    flags = [
        "R" if spec.needs_root else "-",
        "A" if spec.needs_admin else "-",
        "C" if spec.needs_connection else "-",
    ]
    return "".join(flags)


def _action_line(action: Action) -> str:
    spec = action.spec
    name = spec.name.replace("_", "-")
    alias = f"({spec.alias})" if spec.alias else ""
    argument = f"<{spec.arg_kind}> ..." if spec.arg_kind else ""
    return f"  {name:<16}{alias:<6}{_markers(action):<5}{argument}".rstrip()


def render_action_help(registry: ActionRegistry, token: str) -> str:
    action = registry.lookup(token)
    spec = action.spec
    lines = [
        f"depotctl {spec.name.replace('_', '-')}" + (f" <{spec.arg_kind}> ..." if spec.arg_kind else ""),
    ]
    if spec.alias:
        lines.append(f"  alias: {spec.alias}")
    lines.append(f"  requires root: {'yes' if spec.needs_root else 'no'}")
    lines.append(f"  requires admin attribution: {'yes' if spec.needs_admin else 'no'}")
    lines.append(f"  contacts the server: {'yes' if spec.needs_connection else 'no'}")
    return "\n".join(lines)


def render_help(registry: ActionRegistry, topics: Sequence[str] = ()) -> str:
    if topics:
        sections = []
        for topic in topics:
            try:
                sections.append(render_action_help(registry, topic))
            except UnknownActionError as exc:
                sections.append(str(exc))
        return "\n\n".join(sections)
    lines = [version_banner(), "", USAGE, "", "Actions:"]
    lines.extend(_action_line(action) for action in registry)
    lines.extend(["", LEGEND, "", OPTIONS_HELP])
    return "\n".join(lines)


__all__ = ["USAGE", "render_action_help", "render_help", "version_banner"]
