"""Variable, wildcard and quote expansion of lexed tokens."""

from __future__ import annotations

import os
import string
from functools import lru_cache

from .state import ShellState, escape_quotes
from .textutil import split_words
from .tokens import LexData, State, Token, is_redirection

_IDENT_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_NAME_CHARS = _IDENT_CHARS | {"?"}
_NAME_START = frozenset(string.ascii_letters + "_")


def is_name_char(c: str) -> bool:
    """Return True when ``c`` may follow a ``$`` to start an expansion."""
    return c in _NAME_CHARS


def read_variable(text: str, i: int) -> tuple[str, int]:
    """Read the variable name after the ``$`` at ``i``.

    Returns the name and the index just past it.
    """
    start = i + 1
    first = text[start] if start < len(text) else ""
    if first in string.digits or first == "?" or first not in _NAME_START:
        end = i + 2
        return text[start:end], end
    end = start + 1
    while end < len(text) and text[end] in _IDENT_CHARS:
        end += 1
    return text[start:end], end


def expand_text(
    state: ShellState, value: str, cat: bool, quote_state: State | int
) -> str:
    """Replace every ``$name`` in ``value`` with its value.

    A lone trailing ``$`` that is glued to the next token and unquoted
    is dropped.
    """
    parts: list[str] = []
    i = 0
    n = len(value)
    while i < n:
        dollar = value.find("$", i)
        if dollar == -1:
            parts.append(value[i:])
            break
        parts.append(value[i:dollar])
        i = dollar
        following = value[i + 1] if i + 1 < n else ""
        if is_name_char(following):
            name, i = read_variable(value, i)
            parts.append(state.get_env(name))
        elif not cat and not quote_state and not following:
            i += 1
        else:
            parts.append("$")
            i += 1
    return "".join(parts)


def _index_of(data: LexData, token: Token) -> int | None:
    for index, candidate in enumerate(data.tokens):
        if candidate is token:
            return index
    return None


def add_words(data: LexData, words: list[str], old: Token) -> None:
    """Replace ``old`` by ``words``, inserting extra tokens after it."""
    index = _index_of(data, old)
    if index is None:
        return
    old.value = words[0] if words else None
    extra = [Token(word, State.DEFAULT, True) for word in words[1:-1]]
    if len(words) > 1:
        extra.append(Token(words[-1], State.DEFAULT, old.cat))
    old.cat = True
    data.tokens[index + 1:index + 1] = extra


def add_default(data: LexData, words: list[str], old: Token) -> bool:
    """Split ``old`` into ``words``; return True on an ambiguous redirect."""
    index = _index_of(data, old)
    if index is not None and index > 0 and len(words) > 1:
        previous = data.tokens[index - 1].value
        if is_redirection(previous) and previous != "<<":
            old.value = None
            return True
    add_words(data, words, old)
    return False


def expand_dollar(state: ShellState, data: LexData, token: Token) -> bool:
    """Expand the variables of one token; return True on an ambiguous redirect."""
    value = expand_text(state, token.value or "", token.cat, token.state)
    if not value:
        token.value = None
        return False
    if token.state != State.DEFAULT:
        token.value = value
        return False
    words = split_words(value, " ")
    if len(words) == 1:
        token.value = words[0]
        return False
    return add_default(data, words, token)


def match_pattern(pattern: str, name: str) -> bool:
    """Match ``name`` against a pattern where unquoted ``*`` matches anything."""

    @lru_cache(maxsize=None)
    def match(p: int, s: int, quoted: bool, quote: str) -> bool:
        pc = pattern[p] if p < len(pattern) else ""
        sc = name[s] if s < len(name) else ""
        if not pc and not sc:
            return True
        if pc in ("'", '"') and (not quote or pc == quote):
            return match(p + 1, s, not quoted, pc)
        if pc == "*" and not quoted:
            return match(p + 1, s, quoted, quote) or (
                bool(sc) and match(p, s + 1, quoted, quote)
            )
        if pc and pc == sc:
            return match(p + 1, s + 1, quoted, quote)
        return False

    return match(0, 0, False, "")


def _directory_entries(directory: str) -> list[tuple[str, bool]]:
    entries = [(".", True), ("..", True)]
    with os.scandir(directory) as scan:
        entries.extend(
            (entry.name, entry.is_dir(follow_symlinks=False)) for entry in scan
        )
    return sorted(entries)


def glob_matches(pattern: str, directory: str = ".") -> list[str]:
    """Return the names in ``directory`` matching ``pattern``, quotes escaped.

    Hidden names only match a pattern starting with a dot; a pattern
    ending in ``/`` sees directories with a trailing slash.
    """
    try:
        entries = _directory_entries(directory)
    except OSError:
        return []
    matches = []
    for entry_name, is_dir in entries:
        name = entry_name
        if pattern.endswith("/") and is_dir:
            name += "/"
        if not pattern.startswith(".") and entry_name.startswith("."):
            continue
        if match_pattern(pattern, name):
            matches.append(escape_quotes(name))
    return matches


def expand_wildcards(data: LexData, directory: str = ".") -> None:
    """Replace tokens containing ``*`` with the names they match."""
    for token in list(data.tokens):
        if token.value and "*" in token.value:
            matches = glob_matches(token.value, directory)
            if matches:
                add_default(data, matches, token)


def escape_backslashes(token: Token) -> None:
    """Double every backslash in the token's value."""
    if token.value is not None:
        token.value = token.value.replace("\\", "\\\\")


def handle_odd_quotes(tokens: list[Token]) -> None:
    """Protect backslashes in tokens that also hold quotes."""
    for token in tokens:
        value = token.value
        if value and "\\" in value and ("'" in value or '"' in value):
            escape_backslashes(token)


def expand_tokens(state: ShellState, data: LexData) -> bool:
    """Expand variables in all tokens; return True on an ambiguous redirect.

    The word following ``<<`` is never expanded.
    """
    handle_odd_quotes(data.tokens)
    skip_next = False
    for token in list(data.tokens):
        if skip_next:
            skip_next = False
            continue
        if token.value == "<<":
            skip_next = True
        if (
            token.value
            and "$" in token.value
            and token.state in (State.DEFAULT, State.DOUBLE_QUOTE)
        ):
            if expand_dollar(state, data, token):
                return True
    return False


def remove_quotes(token: str | None) -> str | None:
    """Strip quoting and unescape ``\\"``, ``\\'`` and ``\\\\``."""
    if token is None or ("'" not in token and '"' not in token):
        return token
    out: list[str] = []
    quote = ""
    i = 0
    n = len(token)
    while i < n:
        c = token[i]
        if not quote and c in "'\"":
            quote = c
            i += 1
        elif quote and c == quote:
            quote = ""
            i += 1
        elif c == "\\" and i + 1 < n and token[i + 1] in "\"'\\":
            out.append(token[i + 1])
            i += 2
        else:
            out.append(c)
            i += 1
    return "".join(out)