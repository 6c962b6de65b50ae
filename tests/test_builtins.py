import io
import os

import pytest

from minishell.builtins import (
    EnvAssignment,
    ShellExit,
    add_to_env,
    echo_options,
    parse_assignment,
    print_export,
    remove_from_env,
    run_cd,
    run_echo,
    run_env,
    run_exit,
    run_export,
    run_pwd,
    run_unset,
)
from minishell.state import ShellState


def streams():
    return io.StringIO(), io.StringIO()


def test_parse_plain_assignment():
    a = parse_assignment("A=1")
    assert (a.key, a.value, a.element, a.alone, a.append) == ("A", "1", "A=1", False, False)


def test_parse_append_assignment():
    a = parse_assignment("A+=x")
    assert (a.key, a.value, a.element, a.append) == ("A", "x", "A=x", True)


def test_parse_alone():
    a = parse_assignment("NAME")
    assert a.alone is True
    assert a.value is None
    assert a.key == "NAME"


@pytest.mark.parametrize("arg", ["1A", "", "A+B=1", "A-B", "=x", "A+"])
def test_parse_invalid(arg):
    with pytest.raises(ValueError):
        parse_assignment(arg)


def test_add_to_env_replace_and_append():
    state = ShellState(env=["A=1", "AB=2"])
    add_to_env(state, parse_assignment("A=3"))
    assert state.env == ["A=3", "AB=2"]
    add_to_env(state, parse_assignment("AB+=9"))
    assert state.env == ["A=3", "AB=29"]


def test_add_to_env_alone_keeps_value_and_append_to_bare():
    state = ShellState(env=["A=1", "B"])
    add_to_env(state, parse_assignment("A"))
    assert state.env[0] == "A=1"
    add_to_env(state, parse_assignment("B+=x"))
    assert state.env[1] == "B=x"
    add_to_env(state, EnvAssignment(key="C", alone=True))
    assert state.env[-1] == "C"


def test_run_export_invalid_identifier():
    state = ShellState(env=[])
    out, err = streams()
    assert run_export(state, ["export", "9x", "OK=1"], out, err) == 1
    assert err.getvalue() == "minishell: export: `9x' : not a valid identifier\n"
    assert state.env == ["OK=1"]
    assert state.exit_code == 1


def test_run_export_path_clears_ignored():
    state = ShellState(env=["PATH=/bin"], ignored=True)
    out, err = streams()
    assert run_export(state, ["export", "PATH=/usr/bin"], out, err) == 0
    assert state.ignored is False
    assert state.env == ["PATH=/usr/bin"]


def test_print_export_format():
    state = ShellState(env=["A=1", "_=/usr/bin/env", "B"])
    out, err = streams()
    assert run_export(state, ["export"], out, err) == 0
    assert out.getvalue() == 'declare -x A="1"\ndeclare -x B\n'


def test_print_export_hides_path_when_ignored():
    state = ShellState(env=["PATH=/bin", "X=y"], ignored=True)
    out = io.StringIO()
    print_export(state, out)
    assert "PATH" not in out.getvalue()
    assert 'X="y"' in out.getvalue()


def test_remove_from_env_prefix():
    state = ShellState(env=["PATH=/bin", "PWD=/", "HOME=/h"])
    remove_from_env(state, "P")
    assert state.env == ["HOME=/h"]


def test_run_unset():
    state = ShellState(env=["A=1", "B=2"])
    _, err = streams()
    assert run_unset(state, ["unset", "A", "B=2"], err) == 0
    assert state.env == ["B=2"]


def test_run_unset_option():
    state = ShellState(env=["A=1"])
    _, err = streams()
    assert run_unset(state, ["unset", "-x"], err) == 1
    assert err.getvalue() == "minishell: unset: no options allowed\n"
    assert state.env == ["A=1"]


@pytest.mark.parametrize(
    "args, expected",
    [
        (["echo", "-n", "-nnn", "hi"], (False, 3)),
        (["echo", "-", "x"], (True, 1)),
        (["echo", "-nx", "y"], (True, 1)),
        (["echo", "hi", "-n"], (True, 1)),
    ],
)
def test_echo_options(args, expected):
    assert echo_options(args) == expected


def test_run_echo():
    out = io.StringIO()
    assert run_echo(["echo", "a", "b"], out) == 0
    assert out.getvalue() == "a b\n"
    out = io.StringIO()
    run_echo(["echo", "-n", "a"], out)
    assert out.getvalue() == "a"
    out = io.StringIO()
    run_echo(["echo"], out)
    assert out.getvalue() == "\n"


def test_run_env():
    state = ShellState(env=["A=1", "B", "PATH=/bin"], ignored=True)
    out, err = streams()
    assert run_env(state, ["env"], out, err) == 0
    assert out.getvalue() == "A=1\n"


def test_run_env_rejects_arguments():
    state = ShellState(env=["A=1"])
    out, err = streams()
    assert run_env(state, ["env", "x"], out, err) == 1
    assert err.getvalue() == "No options or argument allowed\n"
    assert out.getvalue() == ""


def test_run_pwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    state = ShellState()
    out, err = streams()
    assert run_pwd(state, ["pwd"], out, err) == 0
    assert out.getvalue() == os.getcwd() + "\n"


def test_run_pwd_option():
    out, err = streams()
    assert run_pwd(ShellState(), ["pwd", "-L"], out, err) == 1
    assert err.getvalue() == "minishell: pwd: no options allowed\n"


def test_run_cd_updates_pwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    start = os.getcwd()
    target = tmp_path / "sub"
    target.mkdir()
    state = ShellState(env=[f"PWD={start}", "OLDPWD"])
    _, err = streams()
    assert run_cd(state, ["cd", "sub"], err) == 0
    assert os.getcwd() == os.path.join(start, "sub")
    assert f"OLDPWD={start}" in state.env
    assert f"PWD={os.getcwd()}" in state.env
    assert state.exit_code == 0


def test_run_cd_errors(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    state = ShellState(env=[])
    _, err = streams()
    assert run_cd(state, ["cd"], err) == 1
    assert err.getvalue() == "cd: please provide a relative or absolute path\n"
    _, err = streams()
    assert run_cd(state, ["cd", "a", "b", "c"], err) == 1
    assert err.getvalue() == "minishell: cd: too many arguments\n"
    _, err = streams()
    assert run_cd(state, ["cd", "-P"], err) == 1
    assert err.getvalue() == "minishell: cd: no options allowed\n"
    _, err = streams()
    assert run_cd(state, ["cd", "missing"], err) == 1
    assert err.getvalue().startswith("cd: ")
    assert state.env == []


def test_run_cd_double_dash(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "d").mkdir()
    state = ShellState(env=[])
    _, err = streams()
    assert run_cd(state, ["cd", "--", "d"], err) == 0
    assert os.path.basename(os.getcwd()) == "d"
    assert state.env == []


def test_exit_without_argument_uses_last_status():
    state = ShellState(exit_code=3)
    _, err = streams()
    with pytest.raises(ShellExit) as info:
        run_exit(state, ["exit"], err)
    assert info.value.code == 3
    assert err.getvalue() == "exit\n"


def test_exit_with_number():
    _, err = streams()
    with pytest.raises(ShellExit) as info:
        run_exit(ShellState(), ["exit", "42"], err)
    assert info.value.code == 42
    with pytest.raises(ShellExit) as info:
        run_exit(ShellState(), ["exit", "-1"], io.StringIO())
    assert info.value.code == 255


def test_exit_numeric_required():
    _, err = streams()
    with pytest.raises(ShellExit) as info:
        run_exit(ShellState(), ["exit", "abc"], err)
    assert info.value.code == 2
    assert err.getvalue() == "exit\nminishell: exit: abc: numeric argument required\n"


def test_exit_too_many_arguments_keeps_shell():
    state = ShellState()
    _, err = streams()
    assert run_exit(state, ["exit", "1", "2"], err) == 1
    assert state.exit_code == 1
    assert err.getvalue() == "exit\nminishell :exit: too many arguments\n"


def test_exit_too_many_arguments_in_pipe():
    state = ShellState(pipe_exists=True)
    _, err = streams()
    with pytest.raises(ShellExit) as info:
        run_exit(state, ["exit", "1", "2"], err)
    assert info.value.code == 1
    assert err.getvalue() == "minishell :exit: too many arguments\n"