"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Symbol mapper for the enumerations the server represents as small integers.

Every lookup is total: unknown names degrade to ``UNSPECIFIED`` (0) and the
server decides whether to reject or default them.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class _Symbolic(IntEnum):
    """IntEnum with a total, case-insensitive name lookup."""

    @classmethod
    def from_name(cls, name: Any):
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return cls(0)
        key = name.strip().upper()
        if not key or key == "UNSPECIFIED":
            return cls(0)
        return cls.__members__.get(key, cls(0))

    @property
    def symbol(self) -> str:
        """Lowercase wire/human name, e.g. ``"postgres"``."""
        return self.name.lower()


class DriverKind(_Symbolic):
    UNSPECIFIED = 0
    POSTGRES = 1
    MYSQL = 2
    REDIS = 3
    MONGODB = 4
    KAFKA = 5


class LLMProviderKind(_Symbolic):
    UNSPECIFIED = 0
    OPENAI = 1
    OLLAMA = 2
    ANTHROPIC = 3
    LOCAL = 4


class ChatRole(_Symbolic):
    UNSPECIFIED = 0
    SYSTEM = 1
    USER = 2
    ASSISTANT = 3


def map_driver(name: Any) -> int:
    return int(DriverKind.from_name(name))


def map_provider(name: Any) -> int:
    return int(LLMProviderKind.from_name(name))


def map_role(name: Any) -> int:
    return int(ChatRole.from_name(name))
