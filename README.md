# minishell

The pieces of a small command shell in pure Python: scanning steps for a
command line, variable, wildcard and quote expansion, a parser that turns a
list of commands into an execution tree, the usual builtins, and an executor
that runs the tree with pipes, `&&` / `||`, parenthesised groups and
redirections.

## Modules

- `minishell.textutil` – `atoi`, `split_words` and `is_all_space`.
- `minishell.tokens` – `Token`, `State`, `LexData`, `ShellSyntaxError`, the
  operator checks (`is_operator`, `is_redirection`, `is_logical_op`,
  `is_valid_adjacent`) and the scanning steps `handle_word`, `handle_quote`,
  `handle_parenthesis` and `handle_the_rest`, each of which appends a token
  and returns the index after it.
- `minishell.nodes` – `Command`, `Redirection`, `Tree`, `NodeType` and
  `RedirKind`.
- `minishell.state` – `ShellState`: the environment as a list of
  `NAME=value` strings, the last exit status and run-time flags.
- `minishell.expand` – `expand_text`, `expand_tokens`, `expand_wildcards`,
  `match_pattern`, `glob_matches` and `remove_quotes`.
- `minishell.parser` – `parse`, which builds a `Tree` from a command list,
  resolves parenthesised groups and strips quotes from arguments.
- `minishell.builtins` – `run_echo`, `run_cd`, `run_pwd`, `run_env`,
  `run_export`, `run_unset` and `run_exit`; `exit` raises `ShellExit`.
- `minishell.executor` – `Executor`, plus `resolve_command`,
  `open_redirections`, `read_heredoc` and `failure_exit_code`.

## Examples

```python
from minishell.textutil import atoi, split_words, is_all_space
from minishell.expand import remove_quotes, match_pattern, expand_text
from minishell.state import ShellState
from minishell.tokens import LexData, State, handle_word

atoi("  -42abc")                     # -42
split_words("a:b::c", ":")           # ['a', 'b', 'c']
is_all_space(" \t\n")                # True
remove_quotes('"hello"')             # 'hello'
match_pattern("*.txt", "notes.txt")  # True

state = ShellState()
state.load_environment({"USER": "alice"})
expand_text(state, "hi $USER", True, State.DEFAULT)  # 'hi alice'

data = LexData()
handle_word(data, "echo hi", 0)      # 4; data.tokens[0].value == 'echo'
```

Running a pipeline built by hand:

```python
from minishell.nodes import Command, NodeType
from minishell.parser import parse
from minishell.executor import Executor
from minishell.state import ShellState

state = ShellState()
state.load_environment()             # copies os.environ
commands = [
    Command(args=["echo", "one two"]),
    Command(args=["|"], cmd_type=NodeType.PIPE),
    Command(args=["wc", "-w"]),
]
status = Executor(state).execute(parse(commands))  # prints 2, status 0
```

A command that cannot be run is reported on stderr with status 126 (a
directory, or a file without execute permission) or 127 (not found). An
unterminated quote or a bad operator run raises
`minishell.tokens.ShellSyntaxError`.

## What it does not do

- There is no interactive prompt and no command to start: the package has
  no read–evaluate loop, line editing, history or signal handling.
- There is no single function that turns a command line into the list of
  `Command` objects that `parse` takes. The scanning steps in
  `minishell.tokens` produce tokens, but grouping them into commands,
  redirections and parenthesised groups, and checking operator order across
  the whole line, is left to the caller.

## Tests

The test suite uses pytest, available through the `test` extra.