"""Runs execution trees: external programs, builtins, pipes and groups."""

from __future__ import annotations

import copy
import os
import signal
import subprocess
import sys
import tempfile
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from .builtins import (
    ShellExit,
    run_cd,
    run_echo,
    run_env,
    run_exit,
    run_export,
    run_pwd,
    run_unset,
)
from .expand import expand_text, remove_quotes
from .nodes import Command, NodeType, RedirKind, Redirection, Tree
from .state import ShellState
from .textutil import split_words
from .tokens import State

_HEREDOC_WARNING = "minishell: warning: here-document delimited by end-of-file"
_SIGQUIT = getattr(signal, "SIGQUIT", 3)
_SIGINT = signal.SIGINT


class _Job(Protocol):
    def wait(self) -> int: ...


@dataclass
class _Finished:
    """A job that already ended with ``code``."""

    code: int

    def wait(self) -> int:
        return self.code


class _ThreadJob:
    """A builtin running in the background, as a child process would."""

    def __init__(self, target: Callable[[], int]) -> None:
        self._target = target
        self._code = 1
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        self._code = self._target()

    def wait(self) -> int:
        self._thread.join()
        return self._code


@dataclass
class _Launch:
    """Jobs started for part of a tree; ``last`` gives the exit status."""

    jobs: list[_Job] = field(default_factory=list)
    last: _Job | None = None

    @classmethod
    def of(cls, job: _Job) -> _Launch:
        return cls([job], job)


_ChildBuiltin = Callable[[ShellState, Sequence[str], TextIO, TextIO], int]

_CHILD_BUILTINS: dict[str, _ChildBuiltin] = {
    "echo": lambda state, args, out, err: run_echo(args, out),
    "pwd": run_pwd,
    "env": run_env,
    "export": run_export,
    "unset": lambda state, args, out, err: run_unset(state, args, err),
    "exit": lambda state, args, out, err: run_exit(state, args, err),
}


def is_builtin(name: str | None, pipe_exists: bool) -> bool:
    """Return True for builtins that run in place of an external program."""
    if name in ("echo", "pwd", "export", "unset", "env"):
        return True
    return name == "exit" and pipe_exists


def _runs_in_shell(command: Command, pipe_exists: bool) -> bool:
    name = command.cmd
    return (
        name in ("cd", "unset")
        or (name == "export" and len(command.args) > 1)
        or (name == "exit" and not pipe_exists)
    )


def resolve_command(state: ShellState, name: str) -> tuple[str, bool]:
    """Find ``name`` on the shell's PATH.

    Returns the path to run and whether it was found. A name holding a
    slash is taken as it is.
    """
    if "/" in name:
        return name, True
    search = next(
        (entry[len("PATH="):] for entry in state.env if entry.startswith("PATH=")),
        None,
    )
    if search is None:
        return name, False
    for directory in split_words(search, ":"):
        candidate = f"{directory}/{name}"
        if os.path.exists(candidate):
            return candidate, True
    return name, False


def generate_tmp_name(directory: str) -> str:
    """Return the first unused ``.here_docN`` path in ``directory``."""
    number = 1
    while True:
        path = os.path.join(directory, f".here_doc{number}")
        if not os.path.exists(path):
            return path
        number += 1


def _line_reader(source: Iterable[str]) -> Iterator[str]:
    readline = getattr(source, "readline", None)
    if readline is not None:
        return iter(readline, "")
    return iter(source)


def read_heredoc(
    state: ShellState,
    limiter: str,
    expand: bool,
    lines: Iterable[str] | None = None,
    prompt_stream: TextIO | None = None,
) -> str | None:
    """Collect here-document lines into a temporary file and return its path.

    Lines are read until one equals the limiter (quotes removed). Returns
    None after an earlier failure or when reading is interrupted.
    """
    if state.heredoc_err:
        return None
    reader = _line_reader(sys.stdin if lines is None else lines)
    prompt = sys.stdout if prompt_stream is None else prompt_stream
    word = remove_quotes(limiter) or ""
    terminator = word + "\n"
    path = generate_tmp_name(tempfile.gettempdir())
    state.child = 2
    try:
        with open(path, "w", encoding="utf-8") as out:
            while True:
                prompt.write("> ")
                prompt.flush()
                line = next(reader, None)
                if line is None:
                    prompt.write(f"\n{_HEREDOC_WARNING} (wanted `{word}')\n")
                    break
                if line == terminator:
                    break
                if expand:
                    line = expand_text(state, line, True, State.SINGLE_QUOTE)
                out.write(line)
    except (KeyboardInterrupt, OSError):
        state.heredoc_err = True
        with suppress(OSError):
            os.unlink(path)
        return None
    finally:
        state.child = 0
    return path


def _close(fd: int | None) -> None:
    if fd is not None and fd >= 3:
        with suppress(OSError):
            os.close(fd)


def open_redirections(
    redirections: Sequence[Redirection],
) -> tuple[int | None, int | None]:
    """Open every redirection in order; return the input and output fds.

    A later redirection of the same direction replaces an earlier one.
    Raises ValueError for an ambiguous redirect and OSError when a file
    cannot be opened.
    """
    in_fd: int | None = None
    out_fd: int | None = None
    try:
        for redirection in redirections:
            if redirection.file_name is None:
                raise ValueError("minishell: ambiguous redirect")
            fd = os.open(redirection.file_name, redirection.open_mode, 0o666)
            if redirection.kind == RedirKind.INPUT:
                _close(in_fd)
                in_fd = fd
            else:
                _close(out_fd)
                out_fd = fd
    except (ValueError, OSError):
        _close(in_fd)
        _close(out_fd)
        raise
    return in_fd, out_fd


def failure_exit_code(path: str, stderr: TextIO) -> int:
    """Report why ``path`` could not run and return the status for it."""
    if os.path.isdir(path):
        stderr.write(f"minishell: {path}: Is a directory\n")
        return 126
    if "/" in path and os.path.exists(path) and not os.access(path, os.X_OK):
        stderr.write(f"minishell: {path}: Permission denied\n")
        return 126
    if "/" in path:
        stderr.write(f"minishell: {path}: No such file or directory\n")
    else:
        stderr.write(f"{path}: command not found\n")
    return 127


def _node_name(command: Command) -> str | None:
    if command.cmd is not None:
        return command.cmd
    return command.args[0] if command.args else None


@dataclass
class Executor:
    """Walks an execution tree, starting programs and builtins."""

    state: ShellState
    stdin_fd: int = 0
    stdout_fd: int = 1
    stderr: TextIO = field(default_factory=lambda: sys.stderr)

    def execute(self, root: Tree | None) -> int:
        """Run a tree, wait for everything it started and return its status."""
        code = self._wait(self._launch(root))
        self.state.exit_code = code
        return code

    def _launch(self, root: Tree | None) -> _Launch:
        if root is None:
            return _Launch()
        node = root.node
        if node.is_operator() and node.redirections:
            return self.execute_subshell(root)
        if node.cmd_type == NodeType.PIPE:
            return self.execute_pipe(root)
        if node.cmd_type == NodeType.COMMAND:
            return self.execute_command(node)
        if node.cmd_type == NodeType.LOGICAL_OP:
            return self.execute_logical(root)
        return _Launch()

    def _wait(self, launch: _Launch) -> int:
        code = launch.last.wait() if launch.last is not None else None
        for job in launch.jobs:
            if job is not launch.last:
                job.wait()
        self.state.child = 0
        if code is None:
            return self.state.exit_code
        if code < 0:
            if -code == _SIGQUIT:
                self.state.exit_code = 131
            elif -code == _SIGINT:
                self.state.exit_code = 130
            return self.state.exit_code
        return code

    @contextmanager
    def _streams(self, stdin_fd: int | None, stdout_fd: int | None) -> Iterator[None]:
        saved = self.stdin_fd, self.stdout_fd
        if stdin_fd is not None:
            self.stdin_fd = stdin_fd
        if stdout_fd is not None:
            self.stdout_fd = stdout_fd
        try:
            yield
        finally:
            self.stdin_fd, self.stdout_fd = saved

    def _run_shell_builtin(self, command: Command) -> None:
        state = self.state
        args = command.args
        if command.cmd == "cd":
            run_cd(state, args, self.stderr)
        elif command.cmd == "unset":
            state.exit_code = run_unset(state, args, self.stderr)
        elif command.cmd == "export":
            run_export(state, args, sys.stdout, self.stderr)
        else:
            run_exit(state, args, self.stderr)

    def _start_builtin(self, args: list[str]) -> _Launch:
        handler = _CHILD_BUILTINS[args[0]]
        state = copy.deepcopy(self.state)
        out = os.fdopen(os.dup(self.stdout_fd), "w", encoding="utf-8")
        stderr = self.stderr

        def body() -> int:
            try:
                with out:
                    return handler(state, args, out, stderr)
            except ShellExit as exc:
                return exc.code
            except BrokenPipeError:
                return 1

        return _Launch.of(_ThreadJob(body))

    def _start_program(self, path: str, args: list[str]) -> _Launch:
        env = dict(entry.split("=", 1) for entry in self.state.env if "=" in entry)
        try:
            process = subprocess.Popen(
                args,
                executable=path,
                stdin=self.stdin_fd,
                stdout=self.stdout_fd,
                env=env,
            )
        except OSError:
            return _Launch.of(_Finished(failure_exit_code(path, self.stderr)))
        return _Launch.of(process)

    def execute_command(self, command: Command) -> _Launch:
        """Start one simple command with its redirections."""
        if _runs_in_shell(command, self.state.pipe_exists):
            self._run_shell_builtin(command)
            return _Launch()
        self.state.child = 1
        try:
            in_fd, out_fd = open_redirections(command.redirections)
        except ValueError as exc:
            self.stderr.write(f"{exc}\n")
            return _Launch.of(_Finished(1))
        except OSError as exc:
            self.stderr.write(f"minishell: {exc.filename}: {exc.strerror}\n")
            return _Launch.of(_Finished(1))
        try:
            with self._streams(in_fd, out_fd):
                if not command.cmd:
                    return _Launch.of(_Finished(0))
                if is_builtin(command.args[0], self.state.pipe_exists):
                    return self._start_builtin(command.args)
                path, found = resolve_command(self.state, command.cmd)
                if found:
                    return self._start_program(path, command.args)
                return _Launch.of(_Finished(failure_exit_code(path, self.stderr)))
        finally:
            _close(in_fd)
            _close(out_fd)

    def execute_pipe(self, root: Tree) -> _Launch:
        """Start both sides of a pipe, connected, without waiting."""
        previous = self.state.pipe_exists
        self.state.pipe_exists = True
        read_end, write_end = os.pipe()
        try:
            with self._streams(None, write_end):
                left = self._launch(root.left)
            os.close(write_end)
            write_end = -1
            with self._streams(read_end, None):
                right = self._launch(root.right)
        finally:
            if write_end != -1:
                os.close(write_end)
            os.close(read_end)
            self.state.pipe_exists = previous
        return _Launch(left.jobs + right.jobs, right.last)

    def execute_logical(self, root: Tree) -> _Launch:
        """Run the left side, then the right one depending on its status."""
        self.state.exit_code = self.execute(root.left)
        succeeded = self.state.exit_code == 0
        run_right = succeeded if _node_name(root.node) == "&&" else not succeeded
        if run_right:
            return self._launch(root.right)
        return _Launch()

    def execute_subshell(self, root: Tree) -> _Launch:
        """Run an operator node under the redirections of its group."""
        try:
            in_fd, out_fd = open_redirections(root.node.redirections)
        except ValueError as exc:
            self.stderr.write(f"{exc}\n")
            return _Launch.of(_Finished(1))
        except OSError as exc:
            self.stderr.write(f"minishell: {exc.filename}: {exc.strerror}\n")
            return _Launch.of(_Finished(1))
        root.node.redirections = []
        try:
            with self._streams(in_fd, out_fd):
                return self._launch(root)
        finally:
            _close(in_fd)
            _close(out_fd)