"""Shell-wide state: the environment list, exit status and flags."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .textutil import atoi

SHELL_NAME = "minishell"
DEFAULT_PATH = "PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
MAX_SHELL_LEVEL = 1000


def escape_quotes(value: str) -> str:
    """Put a backslash in front of every single or double quote."""
    return "".join("\\" + c if c in "\"'" else c for c in value)


@dataclass
class ShellState:
    """Everything the shell keeps between command lines."""

    env: list[str] = field(default_factory=list)
    ignored: bool = False
    exit_code: int = 0
    child: int = 0
    pipe_exists: bool = False
    fds: list[int] = field(default_factory=list)
    heredoc_err: bool = False
    pwd: str | None = None

    def load_environment(
        self, env: Iterable[str] | Mapping[str, str] | None = None
    ) -> None:
        """Copy ``env`` into the shell, or build a minimal one if it is empty."""
        if env is None:
            env = os.environ
        if isinstance(env, Mapping):
            entries = [f"{key}={value}" for key, value in env.items()]
        else:
            entries = list(env)
        self.env.extend(entries)
        if self.env:
            self.bump_shell_level()
            return
        try:
            cwd = os.getcwd()
        except OSError:
            cwd = ""
        self.ignored = True
        self.env.extend(
            ["OLDPWD", f"PWD={cwd}", "SHLVL=1", "_=/usr/bin/env", DEFAULT_PATH]
        )

    def bump_shell_level(self) -> None:
        """Increase SHLVL by one, adding it when missing."""
        for index, entry in enumerate(self.env):
            if entry.startswith("SHLVL="):
                level = atoi(entry[len("SHLVL="):]) + 1
                if level >= MAX_SHELL_LEVEL:
                    sys.stderr.write(
                        f"warning: shell level ({level}) too high, resetting to 1"
                    )
                    level = 1
                self.env[index] = f"SHLVL={level}"
                return
        self.env.append("SHLVL=1")

    def get_env(self, name: str) -> str:
        """Return the value of a variable with its quotes escaped, or ""."""
        if name == "?":
            return str(self.exit_code)
        if name == "0":
            return SHELL_NAME
        prefix = name + "="
        for entry in self.env:
            if entry.startswith(prefix):
                return escape_quotes(entry[len(prefix):])
        return ""