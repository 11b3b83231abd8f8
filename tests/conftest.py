"""Pytest configuration and shared fixtures."""

import pytest


def tool_use(invocation_id, name, timestamp, message=None, **tool_input):
    """Backend-shaped tool invocation entry."""
    entry = {
        "type": "tool_use",
        "timestamp": timestamp,
        "level": "info",
        "data": {"id": invocation_id, "name": name, "input": tool_input},
    }
    if message is not None:
        entry["message"] = message
    return entry


def tool_update(invocation_id, timestamp, output):
    """Backend-shaped tool output update entry."""
    return {
        "type": "tool_use_updated",
        "timestamp": timestamp,
        "level": "info",
        "data": {"id": invocation_id, "output": output},
    }


def message(text, timestamp, level="info"):
    """Plain commentary entry."""
    return {"timestamp": timestamp, "level": level, "message": text}


@pytest.fixture
def sample_todo_json():
    """Sample todo list as written by the agent."""
    return [
        {
            "content": "Enumerate open ports",
            "status": "completed",
            "priority": "high",
            "activeForm": "Enumerating open ports",
        },
        {
            "content": "Fingerprint SSH service",
            "status": "in_progress",
            "priority": "medium",
            "activeForm": "Fingerprinting SSH service",
        },
        {
            "content": "Write findings report",
            "status": "pending",
            "priority": "low",
            "activeForm": "Writing findings report",
        },
    ]


@pytest.fixture
def scan_events(sample_todo_json):
    """A short scan step: plan, two commands, commentary and late output."""
    return [
        message("Starting reconnaissance of 10.0.0.5", "2026-03-01T10:00:00Z"),
        tool_use("plan-1", "TodoWrite", "2026-03-01T10:00:01Z", todos=sample_todo_json[:1]),
        tool_use("c1", "Bash", "2026-03-01T10:00:10Z", command="nmap -sV 10.0.0.5"),
        message("Port scan dispatched", "2026-03-01T10:00:11Z"),
        tool_update("c1", "2026-03-01T10:00:12Z", "22/tcp open ssh OpenSSH 8.9"),
        tool_use("c2", "Bash", "2026-03-01T10:00:20Z", cmd="ssh-audit 10.0.0.5"),
        tool_use("plan-2", "TodoWrite", "2026-03-01T10:00:21Z", todos=sample_todo_json),
        message("SSH looks dated", "2026-03-01T10:00:30Z", level="success"),
    ]


@pytest.fixture
def sample_issue_dict():
    """Issue payload as returned by the scan backend."""
    return {
        "id": "issue-ssh-1",
        "title": "Outdated OpenSSH version",
        "description": "OpenSSH 8.9 is affected by CVE-2023-38408.",
        "severity": "high",
        "category": "Network",
        "cvss_score": 7.5,
        "cve_id": "CVE-2023-38408",
        "reproduction_steps": ["Run ssh-audit against the host", "Check banner"],
        "remediation": "Upgrade OpenSSH to 9.3p2 or later.",
        "status": "pending_review",
    }
