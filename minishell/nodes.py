"""Command and syntax-tree structures produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


class NodeType(IntEnum):
    """Kind of a parsed command-line element."""

    COMMAND = 0
    PIPE = 1
    REDIRECTION = 2
    LOGICAL_OP = 3
    PARENTHESIS = 4


class RedirKind(IntEnum):
    """Direction of a redirection."""

    INPUT = 0
    OUTPUT = 1


@dataclass
class Redirection:
    """One redirection attached to a command."""

    kind: RedirKind
    file_name: str | None
    open_mode: int = 0
    expand: bool = False


@dataclass
class Command:
    """A simple command, an operator, or a parenthesised group."""

    args: list[str] = field(default_factory=list)
    cmd: str | None = None
    is_exist: bool = False
    redirections: list[Redirection] = field(default_factory=list)
    group: list[Command] | None = None
    cmd_type: NodeType = NodeType.COMMAND

    def is_operator(self) -> bool:
        """Return True for pipes and logical operators."""
        return self.cmd_type in (NodeType.PIPE, NodeType.LOGICAL_OP)


@dataclass
class Tree:
    """A node of the execution tree."""

    node: Command
    left: Tree | None = None
    right: Tree | None = None