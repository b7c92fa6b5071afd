import builtins
from collections.abc import Callable

import pytest

from kaleido.kaleido_ast import Binary, ExternDecl, FunctionDecl, Literal, Prototype, Variable
from kaleido.kaleido_config import SessionConfig
from kaleido.kaleido_repl import (
    COMPLETE,
    ERROR,
    INCOMPLETE,
    Session,
    TurnResult,
    print_traceback,
    run_lines,
    start_repl,
)

ScriptedInput = Callable[..., list[str]]


# Session state


def test_feed_complete_line() -> None:
    session = Session()
    turn = session.feed("extern sin(x)")
    assert turn.status == COMPLETE
    assert turn.nodes == (ExternDecl(Prototype("sin", ("x",))),)
    assert session.ast == [ExternDecl(Prototype("sin", ("x",)))]
    assert session.pending == ()


def test_feed_across_lines() -> None:
    session = Session()
    first = session.feed("def test(x")
    assert first.status == INCOMPLETE
    assert first.nodes == ()
    assert [tok.value for tok in session.pending] == ["def", "test", "(", "x"]

    second = session.feed(") x")
    assert second.status == COMPLETE
    assert session.ast == [FunctionDecl(Prototype("test", ("x",)), Variable("x"))]
    assert session.pending == ()


def test_pending_tokens_keep_their_line_numbers() -> None:
    session = Session()
    session.feed("def f(x)")
    session.feed("")
    session.feed("# still waiting")
    assert {tok.line for tok in session.pending} == {1, 3}
    assert session.pending[-1].type == "COMMENT"
    session.feed("x + 1")
    assert session.ast == [
        FunctionDecl(Prototype("f", ("x",)), Binary("ADD", Variable("x"), Literal(1.0)))
    ]
    assert session.line_no == 4


def test_bad_input_discards_pending_construct() -> None:
    session = Session()
    session.feed("def f(")
    turn = session.feed("5)")
    assert turn.status == ERROR
    assert turn.message is not None
    assert "Expected parameter name in prototype" in turn.message
    assert session.pending == ()
    assert session.feed("7").status == COMPLETE
    assert session.ast == [FunctionDecl.anonymous(Literal(7.0))]


def test_bad_input_keeps_nodes_completed_earlier_on_the_line() -> None:
    session = Session()
    turn = session.feed("extern cos(x) let 1")
    assert turn.status == ERROR
    assert turn.nodes == (ExternDecl(Prototype("cos", ("x",))),)
    assert session.ast == [ExternDecl(Prototype("cos", ("x",)))]


def test_lexical_error_is_recoverable() -> None:
    session = Session()
    session.feed("def f(x)")
    turn = session.feed("1.2.3")
    assert turn.status == ERROR
    assert turn.message is not None
    assert "Invalid number format" in turn.message
    assert session.pending == ()
    assert session.feed("2").status == COMPLETE


def test_stage_does_not_change_parsing() -> None:
    lines = ["extern sin(x)", "def f(a,", "b) sin(a) * b", "f(1, 2) + 3", "let 4", "9"]
    results = []
    for stage in ("tokens", "ast", "asm"):
        session = Session(SessionConfig(stage=stage))
        for line in lines:
            session.feed(line)
        results.append(session.ast)
    assert results[0] == results[1] == results[2]
    assert len(results[0]) == 4


def test_session_uses_configured_precedence() -> None:
    session = Session(SessionConfig(precedence={"ADD": 40, "MUL": 20}))
    session.feed("1 * 2 + 3")
    assert session.ast == [
        FunctionDecl.anonymous(
            Binary("MUL", Literal(1.0), Binary("ADD", Literal(2.0), Literal(3.0)))
        )
    ]


def test_turn_result_repr() -> None:
    assert repr(TurnResult(ERROR, message="boom")) == "TurnResult(error, nodes=0, message='boom')"


# Interactive loop


def test_repl_quit(scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]) -> None:
    scripted_input(".quit")
    start_repl()
    out = capsys.readouterr().out
    assert "Kaleido REPL [stage=asm]. Type '.quit' to leave." in out
    assert "Exiting Kaleido REPL." in out


def test_repl_custom_quit_command(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("  .bye  ")
    start_repl(SessionConfig(quit_commands=(".bye",)))
    assert "Exiting Kaleido REPL." in capsys.readouterr().out


def test_repl_eof_is_quit(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def raise_eof(_: str) -> str:
        raise EOFError

    monkeypatch.setattr(builtins, "input", raise_eof)
    session = start_repl()
    assert session.ast == []
    assert "Exiting Kaleido REPL." in capsys.readouterr().out


def test_repl_keyboard_interrupt(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(
        builtins, "input", lambda _: (_ for _ in ()).throw(KeyboardInterrupt())
    )
    start_repl()
    assert "Exiting Kaleido REPL." in capsys.readouterr().out


def test_repl_continuation_prompt(scripted_input: ScriptedInput) -> None:
    prompts = scripted_input("def f(x", ")", "x", ".quit")
    session = start_repl()
    assert prompts == ["> ", ". ", ". ", "> "]
    assert session.ast == [FunctionDecl(Prototype("f", ("x",)), Variable("x"))]


def test_repl_uses_custom_line_source(capsys: pytest.CaptureFixture[str]) -> None:
    lines = iter(["extern sin(x)", ".quit"])
    session = start_repl(line_source=lambda _: next(lines))
    assert len(session.ast) == 1
    assert "extern sin/1" in capsys.readouterr().out


def test_repl_asm_stage_output(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("def add(a, b) a + b", ".quit")
    start_repl()
    out = capsys.readouterr().out
    assert "func add(a, b):\n    load a\n    load b\n    add\n    ret" in out


def test_repl_ast_stage_output(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("extern sin(x)", ".quit")
    start_repl(SessionConfig(stage="ast"))
    out = capsys.readouterr().out
    assert "ExternDecl(prototype=Prototype(name='sin', params=('x',)))" in out


def test_repl_tokens_stage_output(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("extern ?", ".quit")
    start_repl(SessionConfig(stage="tokens"))
    out = capsys.readouterr().out
    assert "[tokens] >>> [Token(EXTERN, extern), Token(UNKNOWN, ?), Token(EOF, EOF)]" in out


def test_repl_reports_syntax_error_and_continues(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("let x 1", "42", ".quit")
    session = start_repl()
    out = capsys.readouterr().out
    assert "[error] >>> Expected '=' after 'let x'" in out
    assert session.ast == [FunctionDecl.anonymous(Literal(42.0))]


def test_repl_reports_lexical_error(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input("1..2", ".quit")
    start_repl()
    assert "[error] >>> Invalid number format '1..2'" in capsys.readouterr().out


def test_repl_verbose_toggle_shows_pending(
    scripted_input: ScriptedInput, capsys: pytest.CaptureFixture[str]
) -> None:
    scripted_input(".verbose", "def f(x", ")", "x", ".verbose", ".quit")
    start_repl()
    out = capsys.readouterr().out
    assert "[mode] >>> Verbose mode ON" in out
    assert "[pending] >>> 4 token(s)" in out
    assert "[pending] >>> 5 token(s)" in out
    assert "[mode] >>> Verbose mode OFF" in out


def test_repl_survives_unexpected_exception(
    scripted_input: ScriptedInput,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def explode(self: Session, line: str) -> TurnResult:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(Session, "feed", explode)
    scripted_input("1", ".quit")
    start_repl()
    out = capsys.readouterr().out
    assert "RuntimeError: kaboom" in out
    assert "Exiting Kaleido REPL." in out


def test_print_traceback_outputs_error(capsys: pytest.CaptureFixture[str]) -> None:
    try:
        raise ValueError("bad value")
    except ValueError:
        print_traceback()
    out = capsys.readouterr().out
    assert out.startswith("[error] >>>")
    assert "ValueError: bad value" in out


# Batch mode


def test_run_lines_program(capsys: pytest.CaptureFixture[str]) -> None:
    session = run_lines(["def f(x)", "  x * 2", "f(3)"])
    out = capsys.readouterr().out
    assert len(session.ast) == 2
    assert "func f(x):" in out
    assert "call f/1" in out


def test_run_lines_reports_unfinished_input(capsys: pytest.CaptureFixture[str]) -> None:
    session = run_lines(["extern sin(x)", "def g("])
    out = capsys.readouterr().out
    assert "[error] >>> unexpected end of input" in out
    assert len(session.ast) == 1


def test_run_lines_stops_at_quit(capsys: pytest.CaptureFixture[str]) -> None:
    session = run_lines(["1", ".quit", "2"], SessionConfig(stage="ast"))
    assert len(session.ast) == 1
    assert "FunctionDecl(" in capsys.readouterr().out
