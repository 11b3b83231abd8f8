"""Engine configuration for activity-log reconciliation."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PLAN_TOOL = "TodoWrite"
DEFAULT_SHELL_TOOL = "Bash"
# The agent has emitted shell commands under both keys; the first one wins.
DEFAULT_COMMAND_FIELDS: tuple[str, ...] = ("cmd", "command")
DEFAULT_REVIEWER = "Current User"


@dataclass(frozen=True)
class EngineSettings:
    """Tool names and identities the reconciliation engine relies on."""

    plan_tool: str = DEFAULT_PLAN_TOOL
    plan_items_field: str = "todos"
    shell_tool: str = DEFAULT_SHELL_TOOL
    command_fields: tuple[str, ...] = DEFAULT_COMMAND_FIELDS
    reviewer: str = DEFAULT_REVIEWER

    @classmethod
    def from_dict(cls, data: dict) -> EngineSettings:
        fields = data.get("command_fields") or DEFAULT_COMMAND_FIELDS
        if isinstance(fields, str):
            fields = _split_fields(fields)
        return cls(
            plan_tool=str(data.get("plan_tool") or DEFAULT_PLAN_TOOL),
            plan_items_field=str(data.get("plan_items_field") or "todos"),
            shell_tool=str(data.get("shell_tool") or DEFAULT_SHELL_TOOL),
            command_fields=tuple(str(name) for name in fields) or DEFAULT_COMMAND_FIELDS,
            reviewer=str(data.get("reviewer") or DEFAULT_REVIEWER),
        )

    @classmethod
    def from_env(cls) -> EngineSettings:
        """Build settings from ``SCANLENS_*`` environment variables."""
        return cls.from_dict(
            {
                "plan_tool": os.environ.get("SCANLENS_PLAN_TOOL"),
                "shell_tool": os.environ.get("SCANLENS_SHELL_TOOL"),
                "command_fields": os.environ.get("SCANLENS_COMMAND_FIELDS"),
                "reviewer": os.environ.get("SCANLENS_REVIEWER"),
            }
        )

    def to_dict(self) -> dict:
        return {
            "plan_tool": self.plan_tool,
            "plan_items_field": self.plan_items_field,
            "shell_tool": self.shell_tool,
            "command_fields": list(self.command_fields),
            "reviewer": self.reviewer,
        }


def _split_fields(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


DEFAULT_SETTINGS = EngineSettings()
