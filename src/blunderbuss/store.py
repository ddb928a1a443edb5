"""
Ticket store backed by the beads (``bd``) command line tool.
"""

import json
import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .domain import Ticket, TicketFilter
from .exceptions import StoreError

logger = logging.getLogger(__name__)

DEFAULT_BEADS_DIR = Path(".beads")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def ticket_from_json(data: Dict[str, Any]) -> Ticket:
    """Build a Ticket from one entry of ``bd list --json``."""
    try:
        priority = int(data.get("priority", 2))
    except (TypeError, ValueError):
        priority = 2
    return Ticket(
        id=str(data["id"]),
        title=str(data.get("title", "")),
        description=str(data.get("description") or ""),
        status=str(data.get("status") or ""),
        priority=priority,
        issue_type=str(data.get("issue_type") or data.get("type") or ""),
        assignee=str(data.get("assignee") or ""),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
    )


def matches_search(ticket: Ticket, search: str) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in ticket.title.lower() or needle in ticket.id.lower()


class BeadsStore:
    """Reads tickets by shelling out to ``bd`` next to a ``.beads`` directory."""

    def __init__(self, beads_dir: Path = DEFAULT_BEADS_DIR, timeout: int = 15):
        self.beads_dir = Path(beads_dir).expanduser().resolve()
        self.timeout = timeout

    @property
    def project_dir(self) -> Path:
        return self.beads_dir.parent

    def _run(self, args: List[str]) -> str:
        try:
            result = subprocess.run(
                ["bd", *args],
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise StoreError("bd command not found; install beads or run with --demo")
        except subprocess.TimeoutExpired:
            raise StoreError(f"bd {args[0]} timed out after {self.timeout}s")
        except (subprocess.SubprocessError, OSError) as e:
            raise StoreError(f"bd {args[0]} failed: {e}") from e
        if result.returncode != 0:
            raise StoreError(f"bd {args[0]} failed: {result.stderr.strip() or result.returncode}")
        return result.stdout

    def list_tickets(self, filter: TicketFilter) -> List[Ticket]:
        if not self.beads_dir.is_dir():
            raise StoreError(f"beads directory not found: {self.beads_dir}")

        args = ["list", "--json"]
        if filter.status:
            args += ["--status", filter.status]
        if filter.issue_type:
            args += ["--type", filter.issue_type]

        output = self._run(args)
        try:
            raw = json.loads(output or "[]")
        except json.JSONDecodeError as e:
            raise StoreError(f"bd list returned invalid JSON: {e}") from e
        if not isinstance(raw, list):
            raise StoreError("bd list returned unexpected data")

        tickets = []
        for entry in raw:
            if not isinstance(entry, dict) or "id" not in entry:
                logger.debug("Skipping malformed bd entry: %r", entry)
                continue
            ticket = ticket_from_json(entry)
            if matches_search(ticket, filter.search):
                tickets.append(ticket)
        if filter.limit > 0:
            tickets = tickets[: filter.limit]
        return tickets

    def last_modified(self) -> Optional[float]:
        """Newest mtime among the beads directory and its direct entries."""
        try:
            times = [self.beads_dir.stat().st_mtime]
            times.extend(p.stat().st_mtime for p in self.beads_dir.iterdir())
        except OSError:
            return None
        return max(times)

    def show(self, ticket_id: str) -> str:
        return self._run(["show", ticket_id])
