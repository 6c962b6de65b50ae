"""Builds the execution tree from the list of commands."""

from __future__ import annotations

from .expand import remove_quotes
from .nodes import Command, NodeType, Redirection, Tree


def _find_operator(commands: list[Command]) -> int | None:
    """Index of the last logical operator, or else the first pipe."""
    found = None
    for index, command in enumerate(commands):
        if command.cmd_type == NodeType.LOGICAL_OP:
            found = index
        elif command.cmd_type == NodeType.PIPE and found is None:
            found = index
    return found


def build_tree(commands: list[Command] | None) -> Tree | None:
    """Split the command list at its weakest operator, recursively."""
    if not commands:
        return None
    if len(commands) == 1:
        return Tree(commands[0])
    index = _find_operator(commands)
    if index is None:
        return Tree(commands[0])
    root = Tree(commands[index])
    if index > 0:
        root.left = build_tree(commands[:index])
    if index + 1 < len(commands):
        root.right = build_tree(commands[index + 1:])
    return root


def group_redirections(redirections: list[Redirection], root: Tree) -> None:
    """Attach a group's redirections to the tree built from it."""
    if not redirections:
        return
    node = root.node
    if node.is_operator():
        node.redirections = list(redirections)
    else:
        node.redirections = list(redirections) + node.redirections


def resolve_groups(root: Tree | None) -> Tree | None:
    """Replace parenthesised groups by the trees of their contents."""
    if root is None:
        return None
    root.left = resolve_groups(root.left)
    if root.node.cmd_type == NodeType.PARENTHESIS:
        redirections = root.node.redirections
        subtree = build_tree(root.node.group)
        if subtree is None:
            return None
        group_redirections(redirections, subtree)
        root = resolve_groups(subtree)
    root.right = resolve_groups(root.right)
    return root


def finalize_tree(root: Tree | None) -> None:
    """Strip quotes from arguments and file names; set each command name."""
    if root is None:
        return
    finalize_tree(root.left)
    command = root.node
    for redirection in command.redirections:
        redirection.file_name = remove_quotes(redirection.file_name)
    command.args = [remove_quotes(arg) for arg in command.args]
    if command.args:
        command.cmd = command.args[0]
    finalize_tree(root.right)


def parse(commands: list[Command]) -> Tree | None:
    """Turn the command list into a finished execution tree."""
    root = resolve_groups(build_tree(commands))
    finalize_tree(root)
    return root