import io
import traceback
from collections.abc import Callable, Iterable

from kaleido.emitters.asm_emitter import lower
from kaleido.kaleido_ast import ASTNode
from kaleido.kaleido_config import SessionConfig
from kaleido.kaleido_lexer import LexicalError, Token, tokenize
from kaleido.kaleido_parser import Bad, NotComplete, parse

COMPLETE = "complete"
INCOMPLETE = "incomplete"
ERROR = "error"


class TurnResult:
    """Outcome of feeding one line to a Session."""

    def __init__(
        self,
        status: str,
        tokens: tuple[Token, ...] = (),
        nodes: tuple[ASTNode, ...] = (),
        message: str | None = None,
    ) -> None:
        self.status = status
        self.tokens = tokens
        self.nodes = nodes
        self.message = message

    def __repr__(self) -> str:
        return f"TurnResult({self.status}, nodes={len(self.nodes)}, message={self.message!r})"


class Session:
    """State carried across turns of an interactive session.

    The pending buffer holds tokens of a construct that has not completed yet;
    the AST only ever grows by appending completed top-level nodes.
    """

    def __init__(self, config: SessionConfig | None = None) -> None:
        self.config = config or SessionConfig()
        self.settings = self.config.parser_settings()
        self.pending: tuple[Token, ...] = ()
        self.ast: list[ASTNode] = []
        self.line_no = 0

    def feed(self, line: str) -> TurnResult:
        self.line_no += 1
        try:
            tokens = tuple(tokenize(line, self.line_no))
        except LexicalError as e:
            self.pending = ()
            return TurnResult(ERROR, message=str(e))

        result = parse(self.pending + tokens, self.ast, self.settings)
        nodes = tuple(result.value[len(self.ast) :])
        self.ast.extend(nodes)

        if isinstance(result, NotComplete):
            self.pending = result.rest
            return TurnResult(INCOMPLETE, tokens, nodes)
        self.pending = ()
        if isinstance(result, Bad):
            return TurnResult(ERROR, tokens, nodes, result.message)
        return TurnResult(COMPLETE, tokens, nodes)


def print_traceback() -> None:
    buf = io.StringIO()
    traceback.print_exc(file=buf)
    print("[error] >>>")
    print(buf.getvalue())


def show_lowered(nodes: Iterable[ASTNode]) -> None:
    listing = lower(nodes)
    if listing:
        print(listing)


def show_turn(session: Session, turn: TurnResult, verbose: bool = False) -> None:
    stage = session.config.stage
    if stage == "tokens" and turn.tokens:
        print(f"[tokens] >>> {list(turn.tokens)}")
    if stage == "ast":
        for node in turn.nodes:
            print(node)
    elif stage == "asm" and turn.nodes:
        show_lowered(turn.nodes)
    if turn.status == ERROR:
        print(f"[error] >>> {turn.message}")
    if verbose and session.pending:
        print(f"[pending] >>> {len(session.pending)} token(s): {list(session.pending)}")


def run_lines(
    lines: Iterable[str], config: SessionConfig | None = None, verbose: bool = False
) -> Session:
    """Feeds `lines` through one Session without prompting, showing each turn."""
    session = Session(config)
    for line in lines:
        if line.strip() in session.config.quit_commands:
            break
        show_turn(session, session.feed(line), verbose)
    if session.pending:
        print(f"[error] >>> unexpected end of input: {list(session.pending)}")
    return session


def start_repl(
    config: SessionConfig | None = None,
    verbose: bool = False,
    line_source: Callable[[str], str] | None = None,
) -> Session:
    session = Session(config)
    cfg = session.config
    print(f"Kaleido REPL [stage={cfg.stage}]. Type '{cfg.quit_commands[0]}' to leave.")

    while True:
        try:
            prompt = cfg.continuation_prompt if session.pending else cfg.prompt
            line = (line_source or input)(prompt)
            command = line.strip()
            if command in cfg.quit_commands:
                print("Exiting Kaleido REPL.")
                return session
            if command == ".verbose" and not session.pending:
                verbose = not verbose
                print(f"[mode] >>> Verbose mode {'ON' if verbose else 'OFF'}")
                continue
            show_turn(session, session.feed(line), verbose)
        except (KeyboardInterrupt, EOFError):
            print("\nExiting Kaleido REPL.")
            return session
        except Exception:
            print_traceback()


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
