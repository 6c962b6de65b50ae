"""Built-in commands: cd, echo, env, exit, export, pwd and unset.

Each builtin takes the full argument vector, command name first, and
returns its exit status. ``exit`` raises :class:`ShellExit` when the
shell has to stop.
"""

from __future__ import annotations

import os
import string
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TextIO

from .state import ShellState
from .textutil import atoi

_NAME_START = frozenset(string.ascii_letters + "_")
_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")


class ShellExit(Exception):
    """Raised when the shell must terminate with ``code``."""

    def __init__(self, code: int) -> None:
        super().__init__(f"exit {code}")
        self.code = code


@dataclass
class EnvAssignment:
    """A parsed ``export`` argument."""

    key: str
    value: str | None = None
    element: str | None = None
    alone: bool = False
    append: bool = False


def _not_identifier(arg: str) -> str:
    return f"minishell: export: `{arg}' : not a valid identifier\n"


def parse_assignment(arg: str) -> EnvAssignment:
    """Parse ``NAME``, ``NAME=value`` or ``NAME+=value``.

    Raises ValueError, carrying the shell's message, for a bad identifier.
    """
    if not arg or arg[0] not in _NAME_START:
        raise ValueError(_not_identifier(arg))
    i = 1
    while i < len(arg) and arg[i] != "=":
        c = arg[i]
        following = arg[i + 1] if i + 1 < len(arg) else ""
        if (c not in _NAME_CHARS and c != "+") or (c == "+" and following != "="):
            raise ValueError(_not_identifier(arg))
        i += 1
    if i == len(arg):
        return EnvAssignment(key=arg, alone=True)
    append = arg[i - 1] == "+"
    key = arg[: i - 1] if append else arg[:i]
    value = arg[i + 1:]
    return EnvAssignment(
        key=key, value=value, element=f"{key}={value}", append=append
    )


def _find_entry(state: ShellState, key: str) -> int | None:
    for index, entry in enumerate(state.env):
        if entry.startswith(key) and entry[len(key):len(key) + 1] in ("", "="):
            return index
    return None


def add_to_env(state: ShellState, assignment: EnvAssignment) -> None:
    """Add, replace or append to an environment entry."""
    element = assignment.element if assignment.element is not None else assignment.key
    index = _find_entry(state, assignment.key)
    if index is None:
        state.env.append(element)
    elif assignment.append:
        entry = state.env[index]
        if len(entry) == len(assignment.key):
            entry += "="
        state.env[index] = entry + (assignment.value or "")
    elif not assignment.alone:
        state.env[index] = element


def remove_from_env(state: ShellState, name: str) -> None:
    """Drop every environment entry that starts with ``name``."""
    state.env[:] = [entry for entry in state.env if not entry.startswith(name)]


def echo_options(args: Sequence[str]) -> tuple[bool, int]:
    """Read the ``-n`` options of ``echo``.

    Returns whether a newline is printed and the index of the first word.
    """
    newline = True
    index = 1
    while index < len(args):
        arg = args[index]
        if not arg.startswith("-"):
            break
        flags = arg[1:]
        if not flags or flags.strip("n"):
            break
        newline = False
        index += 1
    return newline, index


def run_echo(args: Sequence[str], stdout: TextIO) -> int:
    """Print the arguments separated by spaces."""
    if len(args) < 2:
        stdout.write("\n")
        return 0
    newline, index = echo_options(args)
    stdout.write(" ".join(args[index:]))
    if newline:
        stdout.write("\n")
    return 0


def _getcwd() -> str | None:
    try:
        return os.getcwd()
    except OSError:
        return None


def _old_directory(state: ShellState, stderr: TextIO) -> str:
    if _getcwd() is None:
        try:
            os.getcwd()
        except OSError as exc:
            stderr.write(
                "cd: error retrieving current directory: getcwd: cannot "
                f"access parent directories: {exc.strerror}\n"
            )
        return state.get_env("PWD")
    recorded = state.get_env("PWD")
    if not recorded and state.pwd:
        return state.pwd
    return recorded


def _new_directory(state: ShellState, path: str) -> str:
    cwd = _getcwd()
    if cwd is None:
        return f"{state.get_env('PWD')}/{path}"
    return cwd


def _set_variable(state: ShellState, key: str, value: str) -> None:
    add_to_env(state, EnvAssignment(key=key, value=value, element=f"{key}={value}"))


def _change_directory(path: str, stderr: TextIO) -> bool:
    try:
        os.chdir(path)
    except OSError as exc:
        stderr.write(f"cd: {exc.strerror}\n")
        return False
    return True


def run_cd(state: ShellState, args: Sequence[str], stderr: TextIO) -> int:
    """Change directory and update OLDPWD and PWD."""
    operands = list(args[1:])
    state.exit_code = 1
    if not operands:
        stderr.write("cd: please provide a relative or absolute path\n")
        return state.exit_code
    if len(operands) > 2:
        stderr.write("minishell: cd: too many arguments\n")
        return state.exit_code
    if len(operands) == 2:
        if operands[0] != "--":
            stderr.write("minishell: cd: too many arguments\n")
            return state.exit_code
        if not _change_directory(operands[1], stderr):
            return state.exit_code
        state.exit_code = 0
        return state.exit_code
    path = operands[0]
    state.pwd = _getcwd()
    if path.startswith("-") and len(path) > 1:
        stderr.write("minishell: cd: no options allowed\n")
        return state.exit_code
    if not _change_directory(path, stderr):
        return state.exit_code
    _set_variable(state, "OLDPWD", _old_directory(state, stderr))
    _set_variable(state, "PWD", _new_directory(state, path))
    state.exit_code = 0
    return state.exit_code


def _is_option(arg: str) -> bool:
    return arg.startswith("-") and len(arg) > 1 and arg != "--"


def run_pwd(
    state: ShellState, args: Sequence[str], stdout: TextIO, stderr: TextIO
) -> int:
    """Print the current directory, falling back to $PWD."""
    if len(args) > 1 and _is_option(args[1]):
        stderr.write("minishell: pwd: no options allowed\n")
        return 1
    cwd = _getcwd()
    if cwd is None:
        cwd = state.get_env("PWD")
    stdout.write(f"{cwd}\n")
    return 0


def run_env(
    state: ShellState, args: Sequence[str], stdout: TextIO, stderr: TextIO
) -> int:
    """Print every variable that has a value."""
    if len(args) > 1:
        stderr.write("No options or argument allowed\n")
        return 1
    for entry in state.env:
        if "=" not in entry:
            continue
        if entry.startswith("PATH=") and state.ignored:
            continue
        stdout.write(f"{entry}\n")
    return 0


def print_export(state: ShellState, stdout: TextIO) -> int:
    """List variables in ``declare -x`` form."""
    for entry in state.env:
        if (entry.startswith("PATH=") and state.ignored) or entry.startswith("_="):
            continue
        if entry:
            stdout.write("declare -x ")
        key, equals, value = entry.partition("=")
        stdout.write(key)
        if equals:
            stdout.write(f'="{value}"')
        stdout.write("\n")
    return 0


def run_export(
    state: ShellState, args: Sequence[str], stdout: TextIO, stderr: TextIO
) -> int:
    """Set variables, or list them when called without arguments."""
    state.exit_code = 0
    if len(args) < 2:
        return print_export(state, stdout)
    for arg in args[1:]:
        try:
            assignment = parse_assignment(arg)
        except ValueError as exc:
            stderr.write(str(exc))
            state.exit_code = 1
            continue
        if assignment.key == "PATH" and state.ignored:
            state.ignored = False
        add_to_env(state, assignment)
    return state.exit_code


def run_unset(state: ShellState, args: Sequence[str], stderr: TextIO) -> int:
    """Remove variables; arguments holding ``=`` are ignored."""
    if len(args) > 1 and _is_option(args[1]):
        stderr.write("minishell: unset: no options allowed\n")
        return 1
    for arg in args[1:]:
        if "=" not in arg:
            remove_from_env(state, arg)
    return 0


def run_exit(state: ShellState, args: Sequence[str] | None, stderr: TextIO) -> int:
    """Leave the shell, raising ShellExit.

    With too many arguments outside a pipeline the shell keeps running
    and 1 is returned.
    """
    announce = not state.pipe_exists
    if not args or len(args) < 2:
        if announce:
            stderr.write("exit\n")
        raise ShellExit(state.exit_code % 256)
    number = args[1]
    digits = number[1:] if number[:1] in ("+", "-") else number
    if any(c not in string.digits for c in digits):
        if announce:
            stderr.write("exit\n")
        stderr.write(f"minishell: exit: {number}: numeric argument required\n")
        raise ShellExit(2)
    if len(args) > 2:
        if announce:
            stderr.write("exit\n")
        stderr.write("minishell :exit: too many arguments\n")
        if not state.pipe_exists:
            state.exit_code = 1
            return 1
        raise ShellExit(1)
    if announce:
        stderr.write("exit\n")
    raise ShellExit(atoi(number) % 256)