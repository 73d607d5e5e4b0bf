"""UCI front end for the StoneFish engine variants."""

from __future__ import annotations

import argparse
import io
import sys
from typing import Callable, Dict, List, Optional, Sequence

import chess

from stonefish.engine import DEFAULT_VARIANT, EngineRegistry, MoveSelector, default_registry
from stonefish.policy import RepetitionTable


class StoneFishEngine:
    """Reads UCI commands from stdin and answers ``go`` with the active selector."""

    def __init__(
        self,
        *,
        variant: str = DEFAULT_VARIANT,
        registry: Optional[EngineRegistry] = None,
        seed: Optional[int] = None,
        debug: bool = False,
    ) -> None:
        self.engine_author = "StoneFish Project"
        self.board = chess.Board()
        self.history = RepetitionTable()
        self.history.push(self.board)
        self.running = True
        self.debug = debug
        self.seed = seed
        self.registry = registry or default_registry()
        self.variant = variant
        self.selector: MoveSelector = self._create_selector(variant)

        self._handlers: Dict[str, Callable[[str], None]] = {
            "uci": self.handle_uci,
            "isready": self.handle_isready,
            "ucinewgame": self.handle_ucinewgame,
            "position": self.handle_position,
            "go": self.handle_go,
            "setoption": self.handle_setoption,
            "debug": self.handle_debug,
            "quit": self.handle_quit,
            "stop": lambda _: None,
        }

    @property
    def engine_name(self) -> str:
        return self.selector.name

    def _create_selector(self, variant: str) -> MoveSelector:
        kwargs = {"logger": self._log}
        if variant == "v1":
            kwargs["seed"] = self.seed
        return self.registry.create(variant, **kwargs)

    def start(self) -> None:
        _ensure_line_buffered_stdout()
        while self.running:
            command = sys.stdin.readline()
            if not command:
                break
            self.dispatch(command)
            sys.stdout.flush()

    def dispatch(self, command: str) -> None:
        command = command.strip()
        if not command:
            return
        parts = command.split(" ", 1)
        name = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""
        handler = self._handlers.get(name)
        if handler is None:
            self.handle_unknown(command)
            return
        try:
            handler(args)
        except Exception as exc:
            print(f"info string Error processing command: {exc}")

    def handle_uci(self, _: str = "") -> None:
        print(f"id name {self.engine_name}")
        print(f"id author {self.engine_author}")
        variants = " ".join(f"var {name}" for name in self.registry.names())
        print(f"option name Variant type combo default {self.variant} {variants}")
        print("uciok")

    def handle_isready(self, _: str) -> None:
        print("readyok")

    def handle_ucinewgame(self, _: str) -> None:
        self.board.reset()
        self.history.clear()
        self.history.push(self.board)

    def handle_position(self, args: str) -> None:
        tokens = args.split()
        if not tokens:
            return

        board = self.board
        move_tokens: List[str] = []

        if tokens[0] == "startpos":
            board.reset()
            if "moves" in tokens:
                move_index = tokens.index("moves")
                move_tokens = tokens[move_index + 1 :]
        elif tokens[0] == "fen":
            try:
                fen_end = tokens.index("moves")
                fen_tokens = tokens[1:fen_end]
                move_tokens = tokens[fen_end + 1 :]
            except ValueError:
                fen_tokens = tokens[1:]
            fen = " ".join(fen_tokens[:6])
            try:
                board.set_fen(fen)
            except ValueError:
                self._log(f"Invalid FEN received: {fen}")
                return
        else:
            self._log(f"Unsupported position command: {args}")
            return

        self.history.clear()
        self.history.push(board)
        for move_text in move_tokens:
            try:
                move = board.parse_uci(move_text)
            except ValueError:
                self._log(f"Illegal move in position command: {move_text}")
                break
            board.push(move)
            self.history.push(board)

    def handle_go(self, _: str) -> None:
        move = self.selector.select_move(self.board, self.history)
        if move is None:
            print("bestmove (none)")
            return
        print(f"bestmove {move.uci()}")

    def handle_setoption(self, args: str) -> None:
        tokens = args.split()
        if "name" not in tokens or "value" not in tokens:
            self._log(f"Malformed setoption: {args}")
            return
        name = " ".join(tokens[tokens.index("name") + 1 : tokens.index("value")]).lower()
        value = " ".join(tokens[tokens.index("value") + 1 :])
        if name != "variant":
            self._log(f"Unknown option: {name}")
            return
        if value not in self.registry:
            self._log(f"Unknown variant: {value}")
            return
        self.variant = value
        self.selector = self._create_selector(value)
        self._log(f"Variant set to {value} ({self.selector.name})")

    def handle_debug(self, args: str) -> None:
        setting = args.strip().lower()
        if setting == "on":
            self.debug = True
        elif setting == "off":
            self.debug = False
        else:
            print("info string debug expects 'on' or 'off'")
            return
        self._log(f"Debug set to {self.debug}")

    def handle_quit(self, _: str) -> None:
        self.running = False
        print(f"info string {self.engine_name} shutting down")

    def handle_unknown(self, command: str) -> None:
        self._log(f"Unknown command: {command}")

    def _log(self, message: str) -> None:
        if not self.debug:
            return
        for line in message.splitlines():
            print(f"info string {line}")


def _ensure_line_buffered_stdout() -> None:
    stdout = sys.stdout
    if isinstance(stdout, io.TextIOBase) and getattr(stdout, "line_buffering", False):
        return
    buffer = getattr(stdout, "buffer", None)
    if buffer is None:
        return
    sys.stdout = io.TextIOWrapper(buffer, line_buffering=True)


def engine_main(argv: Optional[Sequence[str]] = None) -> None:
    registry = default_registry()
    parser = argparse.ArgumentParser(description="StoneFish UCI engine")
    parser.add_argument("--variant", default=DEFAULT_VARIANT, choices=registry.names())
    parser.add_argument("--seed", type=int, default=None, help="seed for the random variant")
    parser.add_argument("--debug", action="store_true", help="emit info string diagnostics")
    args = parser.parse_args(argv)
    StoneFishEngine(variant=args.variant, registry=registry, seed=args.seed, debug=args.debug).start()


if __name__ == "__main__":
    engine_main(sys.argv[1:])
