"""
Template rendering for harness commands and prompts.

Templates use ``{{.Field}}`` placeholders. The prompt is rendered first so
the command template can embed it as ``{{.Prompt}}``.
"""

import getpass
import logging
import re
import socket
import subprocess
from datetime import datetime
from typing import Any, Dict, Optional

from .domain import LaunchSpec, Selection
from .exceptions import RenderError

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*\.(\w+)\s*\}\}")


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def render_template(template: str, context: Dict[str, Any], name: str = "template") -> str:
    """Substitute every ``{{.Field}}`` in ``template`` from ``context``.

    Raises:
        RenderError: on an unknown field or a malformed placeholder
    """
    stripped = PLACEHOLDER_RE.sub("", template)
    if "{{" in stripped:
        snippet = stripped[stripped.index("{{"):][:20]
        raise RenderError(f"{name}: malformed placeholder near {snippet!r}")

    def substitute(match: "re.Match[str]") -> str:
        field_name = match.group(1)
        if field_name not in context:
            raise RenderError(f"{name}: unknown field .{field_name}")
        return _format_value(context[field_name])

    return PLACEHOLDER_RE.sub(substitute, template)


def build_template_context(
    selection: Selection,
    workspace_path: str = "",
    branch: str = "",
    dry_run: bool = False,
    debug: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    ticket = selection.ticket
    harness = selection.harness
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = ""
    return {
        "TicketID": ticket.id if ticket else "",
        "TicketTitle": ticket.title if ticket else "",
        "TicketDescription": ticket.description if ticket else "",
        "TicketStatus": ticket.status if ticket else "",
        "TicketPriority": ticket.priority if ticket else 0,
        "TicketIssueType": ticket.issue_type if ticket else "",
        "TicketAssignee": ticket.assignee if ticket else "",
        "TicketCreatedAt": ticket.created_at if ticket else None,
        "TicketUpdatedAt": ticket.updated_at if ticket else None,
        "HarnessName": harness.name if harness else "",
        "Model": selection.model,
        "Agent": selection.agent,
        "RepoPath": workspace_path,
        "Branch": branch,
        "WorkDir": workspace_path,
        "User": user,
        "Hostname": socket.gethostname(),
        "DryRun": dry_run,
        "Debug": debug,
        "Timestamp": now or datetime.now(),
        "Prompt": "",
    }


class TemplateRenderer:
    """Renders a Selection into a LaunchSpec."""

    def __init__(self, dry_run: bool = False, debug: bool = False):
        self.dry_run = dry_run
        self.debug = debug

    @staticmethod
    def current_branch(workspace_path: str) -> str:
        if not workspace_path:
            return ""
        try:
            result = subprocess.run(
                ["git", "-C", workspace_path, "rev-parse", "--abbrev-ref", "HEAD"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (subprocess.SubprocessError, OSError):
            return ""
        return result.stdout.strip() if result.returncode == 0 else ""

    def render(self, selection: Selection, workspace_path: str, window_name: str) -> LaunchSpec:
        harness = selection.harness
        if harness is None or selection.ticket is None:
            raise RenderError("nothing to render: ticket and harness must be selected")

        context = build_template_context(
            selection,
            workspace_path=workspace_path,
            branch=self.current_branch(workspace_path),
            dry_run=self.dry_run,
            debug=self.debug,
        )
        prompt = ""
        if harness.prompt_template:
            prompt = render_template(
                harness.prompt_template, context, f"prompt_template for harness {harness.name!r}"
            )
        context["Prompt"] = prompt
        command = render_template(
            harness.command_template, context, f"command_template for harness {harness.name!r}"
        )
        logger.debug("Rendered command for %s: %s", window_name, command)
        return LaunchSpec(
            selection=selection,
            command=command,
            prompt=prompt,
            window_name=window_name,
            work_dir=workspace_path,
            env=dict(harness.env),
        )
