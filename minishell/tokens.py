"""Tokenizer pieces: token kinds, classification and the scanning steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

_WHITESPACE = frozenset(" \t\n\v\f\r")
_OPERATOR_CHARS = frozenset("><|&()")
_REDIRECTIONS = frozenset({"<", "<<", ">", ">>"})
_OPERATORS = frozenset({"|", ")", "(", "<", ">", "<<", ">>", "||", "&&"})
_LOGICAL_OPS = frozenset({"&&", "||", "|"})


class State(IntEnum):
    """Lexical class of a token."""

    DEFAULT = 0
    SINGLE_QUOTE = 1
    DOUBLE_QUOTE = 2
    ESCAPE = 3
    REDIRECTION = 4
    PARENTHESIS = 5
    AND = 6
    OR = 7
    PIPE = 8


_CHAR_STATES = {
    "'": State.SINGLE_QUOTE,
    '"': State.DOUBLE_QUOTE,
    ">": State.REDIRECTION,
    "<": State.REDIRECTION,
    "(": State.PARENTHESIS,
    ")": State.PARENTHESIS,
    "&": State.AND,
    "|": State.OR,
}


@dataclass
class Token:
    """A lexed token; ``cat`` is False when it is glued to the next one."""

    value: str | None
    state: State
    cat: bool = True


class ShellSyntaxError(Exception):
    """Raised when the input line cannot be tokenized."""

    def __init__(self, near: str) -> None:
        super().__init__(f"minishell : parse error near '{near}'")
        self.near = near


@dataclass
class LexData:
    """The token list being built for one input line."""

    tokens: list[Token] = field(default_factory=list)

    def add(self, value: str | None, state: State, cat: bool) -> Token:
        """Append a new token and return it."""
        token = Token(value, state, bool(cat))
        self.tokens.append(token)
        return token


def _char_at(line: str, i: int) -> str:
    return line[i] if 0 <= i < len(line) else ""


def is_operator_char(c: str) -> bool:
    """Return True for characters that start an operator."""
    return c in _OPERATOR_CHARS


def is_whitespace(c: str) -> bool:
    """Return True for a single whitespace character."""
    return c in _WHITESPACE


def find_state(c: str) -> State:
    """Return the lexical class a character starts."""
    return _CHAR_STATES.get(c, State.DEFAULT)


def is_redirection(token: str | None) -> bool:
    return token in _REDIRECTIONS


def is_operator(token: str | None) -> bool:
    return token in _OPERATORS


def is_logical_op(token: str | None) -> bool:
    return token in _LOGICAL_OPS


def is_valid_adjacent(token: str | None, next_token: str | None) -> bool:
    """Return True when two operators may legally follow each other."""
    return (
        (token == "(" and next_token == "(")
        or (token == ")" and next_token == ")")
        or (token == ")" and next_token == "|")
        or (token == "|" and next_token == "(")
        or (token == ")" and is_redirection(next_token))
        or (token == ")" and is_logical_op(next_token))
        or (token == "&&" and next_token == "(")
        or (token == "||" and next_token == "(")
        or (is_logical_op(token) and is_redirection(next_token))
    )


def same_string(line: str, i: int, quote_char: str) -> bool:
    """Tell whether the token ending at ``i`` stands alone.

    For a quoted token ``i`` points at the closing quote, which is skipped.
    Returns False when a word character follows directly.
    """
    j = i
    if quote_char != " " and _char_at(line, j) == quote_char:
        j += 1
    c = _char_at(line, j)
    return not (c and not is_whitespace(c) and not is_operator_char(c))


def count_operator(line: str, i: int, c: str) -> int:
    """Count how many times ``c`` repeats starting at ``i``."""
    count = 0
    while _char_at(line, i + count) == c:
        count += 1
    return count


def handle_the_rest(data: LexData, line: str, i: int, state: State) -> int:
    """Read a run of one operator character; return the index after it."""
    c = line[i]
    run = count_operator(line, i, c)
    if (c == "&" and run == 1) or run > 2:
        raise ShellSyntaxError(c)
    data.add(line[i:i + run], state, True)
    return i + run


def handle_parenthesis(data: LexData, line: str, i: int) -> int:
    """Read one parenthesis; return the index after it."""
    data.add(")" if line[i] == ")" else "(", State.PARENTHESIS, True)
    return i + 1


def handle_word(data: LexData, line: str, i: int) -> int:
    """Read an unquoted word; return the index after it."""
    start = i
    while is_whitespace(_char_at(line, i)):
        i += 1
    if i >= len(line):
        return i
    while (
        i < len(line)
        and not is_whitespace(line[i])
        and find_state(line[i]) is State.DEFAULT
    ):
        i += 1
    data.add(line[start:i], State.DEFAULT, same_string(line, i, " "))
    return i


def handle_quote(data: LexData, line: str, i: int, quote_char: str) -> int:
    """Read a quoted string, quotes included; return the index after it."""
    state = State.DOUBLE_QUOTE if quote_char == '"' else State.SINGLE_QUOTE
    end = line.find(quote_char, i + 1)
    if end == -1:
        raise ShellSyntaxError(quote_char)
    data.add(line[i:end + 1], state, same_string(line, end, quote_char))
    return end + 1