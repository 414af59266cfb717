"""Turn sequencing, configuration and score keeping for one game session."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union
import logging
import random
import threading

from .ai import HeuristicAI, MinimaxAI, Strategy, build_ai
from .game import EMPTY, PLAYERS, Board, Line, Outcome, Player, evaluate, other
from .scheduling import Handle, Scheduler, TimerScheduler

logger = logging.getLogger(__name__)

# Pause before the computer answers, in seconds
AI_MOVE_DELAY = 0.2


class GameMode(str, Enum):
    SINGLE_PLAYER = "single"
    TWO_PLAYER = "two"


class Side(str, Enum):
    """``PLAYER`` is the human or player 1; ``OPPONENT`` the computer or player 2."""

    PLAYER = "player"
    OPPONENT = "opponent"


@dataclass(frozen=True)
class GameConfig:
    mode: GameMode = GameMode.SINGLE_PLAYER
    symbol: Player = "X"
    first: Side = Side.PLAYER
    strategy: Strategy = Strategy.HEURISTIC

    def __post_init__(self) -> None:
        if self.symbol not in PLAYERS:
            raise ValueError(f"Unknown symbol {self.symbol!r}")
        # Accept plain strings for the enum fields
        object.__setattr__(self, "mode", GameMode(self.mode))
        object.__setattr__(self, "first", Side(self.first))
        object.__setattr__(self, "strategy", Strategy(self.strategy))

    @property
    def opponent_symbol(self) -> Player:
        return other(self.symbol)

    def symbol_for(self, side: Side) -> Player:
        return self.symbol if side is Side.PLAYER else self.opponent_symbol

    def side_of(self, symbol: Player) -> Side:
        return Side.PLAYER if symbol == self.symbol else Side.OPPONENT


# ---------- Events for the presentation layer ----------


class StatusKind(str, Enum):
    TURN = "turn"
    WIN = "win"
    DRAW = "draw"


@dataclass(frozen=True)
class Snapshot:
    cells: Tuple[str, ...]  # "X", "O" or "" for empty
    terminal_line: Optional[Line]
    game_over: bool


@dataclass(frozen=True)
class StatusMessage:
    kind: StatusKind
    symbol: Optional[Player] = None
    owner_label: Optional[str] = None

    @property
    def text(self) -> str:
        if self.kind is StatusKind.TURN:
            return f"Turn: {self.symbol} ({self.owner_label})"
        if self.kind is StatusKind.WIN:
            return f"Winner: {self.symbol} ({self.owner_label})"
        return "It's a draw"


@dataclass(frozen=True)
class ScoreUpdate:
    side_a_wins: int
    side_b_wins: int
    ties: int


Event = Union[Snapshot, StatusMessage, ScoreUpdate]
Listener = Callable[[Event], None]


@dataclass
class Scores:
    side_a: int = 0
    side_b: int = 0
    ties: int = 0

    def record(self, winner: Optional[Side]) -> None:
        if winner is None:
            self.ties += 1
        elif winner is Side.PLAYER:
            self.side_a += 1
        else:
            self.side_b += 1

    def as_update(self) -> ScoreUpdate:
        return ScoreUpdate(
            side_a_wins=self.side_a, side_b_wins=self.side_b, ties=self.ties
        )


# ---------- Session ----------


class Session:
    """Owns the board, whose turn it is and the running scores.

    Player input goes through :meth:`on_human_move`, :meth:`configure` and
    :meth:`request_reset`. Every accepted move or reset is reported to the
    listeners as a :class:`Snapshot` followed by a :class:`StatusMessage`;
    finished games additionally report a :class:`ScoreUpdate`.

    In single-player mode the computer's reply is scheduled through
    ``scheduler`` after ``ai_delay`` seconds. A reset invalidates any reply
    still waiting to fire.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        ai_delay: float = AI_MOVE_DELAY,
        listeners: Optional[List[Listener]] = None,
    ) -> None:
        self.config = config if config is not None else GameConfig()
        if scheduler is None:
            scheduler = TimerScheduler()
        self.scheduler: Scheduler = scheduler
        # Transitions and fired callbacks serialize on the scheduler's lock
        self.lock = getattr(scheduler, "lock", None) or threading.RLock()
        self.rng = rng if rng is not None else random.Random()
        self.ai_delay = ai_delay
        self.listeners: List[Listener] = list(listeners or [])
        self.scores = Scores()

        self.board = Board()
        self.current: Player = self.config.symbol
        self.game_over = False
        self.outcome = Outcome()
        self.ai: Optional[Union[HeuristicAI, MinimaxAI]] = None
        self._generation = 0
        self._pending: Optional[Handle] = None

        self.reset(self.config)

    # ---- inputs from the presentation layer ----

    def on_human_move(self, index: int) -> bool:
        return self.apply_move(index)

    def configure(self, config: GameConfig) -> None:
        self.reset(config)

    def request_reset(self) -> None:
        self.reset()

    # ---- transitions ----

    def apply_move(self, index: int) -> bool:
        """Place the current player's mark at ``index``.

        Returns ``False`` without touching any state when the game is over,
        the cell is taken or out of range, or the computer is to move.
        """
        with self.lock:
            return self._apply_move(index)

    def _apply_move(self, index: int) -> bool:
        if self.game_over:
            return False
        if not isinstance(index, int) or not 0 <= index < 9:
            return False
        if self.current == self.computer_symbol:
            return False
        if self.board.cells[index] != EMPTY:
            return False

        self._place(index)
        self._schedule_computer_move()
        return True

    def reset(self, config: Optional[GameConfig] = None) -> None:
        """Start a new game, keeping the cumulative scores."""
        with self.lock:
            self._reset(config)

    def _reset(self, config: Optional[GameConfig]) -> None:
        self._cancel_pending()
        self._generation += 1
        if config is not None:
            self.config = config

        self.board = Board()
        self.game_over = False
        self.outcome = Outcome()
        self.current = self.config.symbol_for(self.config.first)
        computer = self.computer_symbol
        self.ai = None
        if computer is not None:
            self.ai = build_ai(self.config.strategy, computer, self.rng)
        logger.info(
            "new game: mode=%s symbol=%s first=%s strategy=%s",
            self.config.mode.value,
            self.config.symbol,
            self.config.first.value,
            self.config.strategy.value,
        )

        self._emit(self.snapshot())
        self._emit(self.status())
        self._schedule_computer_move()

    def _place(self, index: int) -> None:
        self.board.place(self.current, index)
        outcome = evaluate(self.board)
        if outcome.terminal:
            self.game_over = True
            self.outcome = outcome
            winner = self.config.side_of(outcome.winner) if outcome.winner else None
            self.scores.record(winner)
            logger.info("game finished: %s %s", outcome.kind, outcome.winner or "")
            self._emit(self.snapshot())
            self._emit(self.status())
            self._emit(self.scores.as_update())
            return

        self.current = other(self.current)
        self._emit(self.snapshot())
        self._emit(self.status())

    # ---- computer turn ----

    @property
    def computer_symbol(self) -> Optional[Player]:
        if self.config.mode is GameMode.SINGLE_PLAYER:
            return self.config.opponent_symbol
        return None

    @property
    def ai_pending(self) -> bool:
        return self._pending is not None

    def _schedule_computer_move(self) -> None:
        if self.game_over or self._pending is not None:
            return
        if self.computer_symbol is None or self.current != self.computer_symbol:
            return
        generation = self._generation
        self._pending = self.scheduler.call_later(
            self.ai_delay, lambda: self._run_computer_move(generation)
        )

    def _run_computer_move(self, generation: int) -> None:
        with self.lock:
            # A reset since scheduling means this callback belongs to a dead game
            if generation != self._generation:
                return
            self._pending = None
            if (
                self.game_over
                or self.ai is None
                or self.current != self.computer_symbol
            ):
                return
            move = self.ai.choose(self.board)
            if generation != self._generation:
                return
            self._place(move)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    # ---- views ----

    def owner_label(self, symbol: Player) -> str:
        side = self.config.side_of(symbol)
        if self.config.mode is GameMode.SINGLE_PLAYER:
            return "Human" if side is Side.PLAYER else "Computer"
        return "Player 1" if side is Side.PLAYER else "Player 2"

    def side_labels(self) -> Tuple[str, str]:
        mine, theirs = self.config.symbol, self.config.opponent_symbol
        if self.config.mode is GameMode.SINGLE_PLAYER:
            return f"PLAYER ({mine})", f"COMPUTER ({theirs})"
        return f"PLAYER 1 ({mine})", f"PLAYER 2 ({theirs})"

    def strategy_label(self) -> str:
        return f"Model: {self.config.strategy.label}"

    def snapshot(self) -> Snapshot:
        return Snapshot(
            cells=tuple("" if c == EMPTY else c for c in self.board.cells),
            terminal_line=self.outcome.line,
            game_over=self.game_over,
        )

    def status(self) -> StatusMessage:
        winner = self.outcome.winner
        if winner:
            return StatusMessage(StatusKind.WIN, winner, self.owner_label(winner))
        if self.game_over:
            return StatusMessage(StatusKind.DRAW)
        return StatusMessage(
            StatusKind.TURN, self.current, self.owner_label(self.current)
        )

    def _emit(self, event: Event) -> None:
        for listener in self.listeners:
            listener(event)
