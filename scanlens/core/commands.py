"""Correlation of shell invocations with their deferred output."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from .events import TOOL_INVOCATION, TOOL_UPDATE, ClassifiedEvent
from .settings import DEFAULT_SETTINGS, EngineSettings
from ..utils import to_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BashCommand:
    """A shell command run by the agent, with output once it is known."""

    invocation_id: str
    timestamp: datetime | None
    command: str
    output: str | None = None

    @property
    def has_output(self) -> bool:
        return self.output is not None

    def to_dict(self) -> dict:
        return {
            "invocationId": self.invocation_id,
            "timestamp": to_iso(self.timestamp),
            "command": self.command,
            "output": self.output,
        }


def command_text(event: ClassifiedEvent, settings: EngineSettings = DEFAULT_SETTINGS) -> str | None:
    """Return the command of a shell invocation, or None if it is not one."""
    payload = event.payload
    if event.tag != TOOL_INVOCATION or payload is None:
        return None
    if payload.tool_name != settings.shell_tool or not payload.invocation_id:
        return None
    for field_name in settings.command_fields:
        value = payload.input.get(field_name)
        if isinstance(value, str) and value:
            return value
    return None


def correlate_commands(
    events: Iterable[ClassifiedEvent],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> dict[str, BashCommand]:
    """Fold invocations and updates into one command per invocation id.

    The first invocation of an id wins. Updates overwrite the output of an
    already seen id and are dropped otherwise. A fresh mapping is returned on
    every call; insertion order is first-invocation order.
    """
    commands: dict[str, BashCommand] = {}
    for event in events:
        payload = event.payload
        if payload is None:
            continue

        if event.tag == TOOL_INVOCATION:
            text = command_text(event, settings)
            if text is None:
                continue
            if payload.invocation_id in commands:
                logger.debug("Ignoring repeated invocation id %s", payload.invocation_id)
                continue
            commands[payload.invocation_id] = BashCommand(
                invocation_id=payload.invocation_id,
                timestamp=payload.emitted_at or event.entry.timestamp,
                command=text,
                output=payload.output or None,
            )

        elif event.tag == TOOL_UPDATE:
            existing = commands.get(payload.invocation_id)
            if existing is None:
                logger.debug("Dropping update for unknown invocation id %s", payload.invocation_id)
                continue
            commands[payload.invocation_id] = replace(existing, output=payload.output)

    return commands
