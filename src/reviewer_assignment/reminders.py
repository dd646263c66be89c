from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from .ledger import AssignmentLedger


ANGLE_ADDRESS = re.compile(r"<([^>]+)>")


@dataclass(frozen=True)
class Reminder:
    reviewer: str
    address: str | None
    projects: tuple[str, ...]

    @property
    def reachable(self) -> bool:
        return self.address is not None


@dataclass(frozen=True)
class ReminderMessage:
    to: str | None
    subject: str
    body: str


def parse_directory(text: str) -> dict[str, str]:
    """Parse "Name, email" or "Name <email>" lines into a name to email map.

    A bracketed address without a name is filed under the address's local
    part. Lines carrying no address are skipped.
    """
    directory: dict[str, str] = {}
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        match = ANGLE_ADDRESS.search(line)
        if match:
            email = match.group(1).strip()
            name = (line[: match.start()] + line[match.end() :]).strip().rstrip(",").strip()
        else:
            parts = [part.strip() for part in line.split(",") if part.strip()]
            if len(parts) < 2:
                continue
            email = parts.pop()
            name = ", ".join(parts)
        if not email:
            continue
        email = email.lower()
        directory[name or email.split("@")[0]] = email
    return directory


def resolve_address(directory: Mapping[str, str | None], reviewer: str) -> str | None:
    address = directory.get(reviewer)
    if address is None:
        folded = reviewer.casefold()
        for name, candidate in directory.items():
            if name.casefold() == folded:
                address = candidate
                break
    if address is None:
        return None
    address = str(address).strip()
    return address or None


def build_reminders(
    ledger: AssignmentLedger,
    directory: Mapping[str, str | None] | None = None,
) -> list[Reminder]:
    directory = directory or {}
    grouped: dict[str, list[str]] = {}
    for project in ledger.projects:
        for reviewer in ledger.assignments.get(project, ()):
            grouped.setdefault(reviewer, []).append(project)

    return [
        Reminder(
            reviewer=reviewer,
            address=resolve_address(directory, reviewer),
            projects=tuple(projects),
        )
        for reviewer, projects in grouped.items()
    ]


def unreachable(reminders: Iterable[Reminder]) -> list[str]:
    return [reminder.reviewer for reminder in reminders if not reminder.reachable]


def summarize(reminders: Iterable[Reminder]) -> str:
    reminders = list(reminders)
    if not reminders:
        return "No reviewers have assigned projects."
    ready = sum(1 for reminder in reminders if reminder.reachable)
    missing = unreachable(reminders)
    message = f"Prepared {ready} reminder{'s' if ready != 1 else ''}."
    if missing:
        message += f" Missing email for: {', '.join(missing)}."
    return message


def compose_message(reminder: Reminder, dataset_name: str | None = None) -> ReminderMessage:
    scope = f" ({dataset_name})" if dataset_name else ""
    count = len(reminder.projects)
    subject = f"Review reminder{scope}: {count} project{'s' if count != 1 else ''} assigned"
    lines = [
        f"Hi {reminder.reviewer},",
        "",
        "You are assigned to review the following projects:",
        "",
    ]
    lines.extend(f"  - {project}" for project in reminder.projects)
    lines.extend(["", "Please submit your survey for each project before the meeting.", ""])
    return ReminderMessage(to=reminder.address, subject=subject, body="\n".join(lines))
