"""Tests for turn sequencing, resets and scores in a game session."""

import random
import threading
import time

import pytest

from tictactoe.ai import HeuristicAI, MinimaxAI, Strategy
from tictactoe.game import EMPTY
from tictactoe.scheduling import ManualScheduler, TimerScheduler
from tictactoe.session import (
    GameConfig,
    GameMode,
    ScoreUpdate,
    Session,
    Side,
    Snapshot,
    StatusKind,
    StatusMessage,
)


class ScriptedAI:
    """Plays a fixed list of cells in order."""

    def __init__(self, moves):
        self.moves = list(moves)

    def choose(self, board):
        return self.moves.pop(0)


def _session(config=None, **kwargs):
    events = []
    scheduler = ManualScheduler()
    session = Session(
        config,
        scheduler=scheduler,
        rng=random.Random(0),
        listeners=[events.append],
        **kwargs,
    )
    return session, scheduler, events


def _play(session, scheduler, human_moves):
    for idx in human_moves:
        assert session.on_human_move(idx)
        scheduler.run_pending()


def test_reset_emits_snapshot_and_status():
    session, scheduler, events = _session()
    assert events == [
        Snapshot(cells=("",) * 9, terminal_line=None, game_over=False),
        StatusMessage(StatusKind.TURN, "X", "Human"),
    ]
    assert session.current == "X"
    assert not session.ai_pending
    assert scheduler.pending == []


def test_human_move_schedules_computer_reply():
    session, scheduler, events = _session()
    assert session.on_human_move(4)
    assert session.board.cells[4] == "X"
    assert session.current == "O"
    assert session.ai_pending
    assert [c.delay for c in scheduler.pending] == [session.ai_delay]

    assert scheduler.run_pending() == 1
    assert not session.ai_pending
    assert session.current == "X"
    assert session.board.cells.count("O") == 1
    assert isinstance(session.ai, HeuristicAI)


def test_move_on_occupied_cell_is_ignored():
    session, scheduler, events = _session(GameConfig(mode=GameMode.TWO_PLAYER))
    session.on_human_move(0)
    before = (list(session.board.cells), session.current, len(events))
    assert not session.on_human_move(0)
    assert (list(session.board.cells), session.current, len(events)) == before


def test_move_during_computer_turn_is_ignored():
    session, scheduler, events = _session()
    session.on_human_move(0)
    count = len(events)
    assert not session.on_human_move(1)
    assert session.board.cells[1] == EMPTY
    assert len(events) == count


def test_out_of_range_move_is_ignored():
    session, scheduler, events = _session()
    assert not session.on_human_move(9)
    assert not session.on_human_move(-1)
    assert session.board.empty_cells() == list(range(9))


def test_moves_after_game_over_are_ignored():
    session, scheduler, events = _session(GameConfig(mode=GameMode.TWO_PLAYER))
    for idx in (0, 3, 1, 4, 2):
        assert session.on_human_move(idx)
    assert session.game_over
    count = len(events)
    assert not session.on_human_move(8)
    assert session.board.cells[8] == EMPTY
    assert len(events) == count


def test_win_emits_terminal_snapshot_status_and_scores():
    session, scheduler, events = _session(GameConfig(mode=GameMode.TWO_PLAYER))
    for idx in (0, 3, 1, 4, 2):
        session.on_human_move(idx)
    snapshot, status, scores = events[-3:]
    assert snapshot.game_over
    assert snapshot.terminal_line == (0, 1, 2)
    assert status == StatusMessage(StatusKind.WIN, "X", "Player 1")
    assert status.text == "Winner: X (Player 1)"
    assert scores == ScoreUpdate(side_a_wins=1, side_b_wins=0, ties=0)


def test_computer_opens_when_configured_to_start():
    config = GameConfig(first=Side.OPPONENT, strategy=Strategy.MINIMAX)
    session, scheduler, events = _session(config)
    assert session.current == "O"
    assert session.ai_pending
    assert not session.on_human_move(0)

    scheduler.run_pending()
    assert session.board.cells.count("O") == 1
    assert session.current == "X"
    assert isinstance(session.ai, MinimaxAI)


def test_player_can_take_o_and_still_start():
    session, scheduler, events = _session(GameConfig(symbol="O"))
    assert session.current == "O"
    assert session.computer_symbol == "X"
    assert session.side_labels() == ("PLAYER (O)", "COMPUTER (X)")


def test_reset_discards_scheduled_computer_move():
    session, scheduler, events = _session()
    session.on_human_move(0)
    stale = scheduler.pending[0]

    session.request_reset()
    assert stale.cancelled
    assert not session.ai_pending

    # Even a callback that fires after cancellation must not touch the new game
    stale.callback()
    assert session.board.empty_cells() == list(range(9))
    assert session.current == "X"


def test_stale_callback_does_not_steal_new_pending_move():
    config = GameConfig(first=Side.OPPONENT)
    session, scheduler, events = _session(config)
    stale = scheduler.pending[0]
    session.request_reset()
    assert session.ai_pending

    stale.callback()
    assert session.ai_pending
    assert session.board.empty_cells() == list(range(9))

    scheduler.run_pending()
    assert len(session.board.empty_cells()) == 8


def test_scores_across_win_loss_and_draw():
    session, scheduler, events = _session()

    session.ai = ScriptedAI([3, 4])
    _play(session, scheduler, [0, 1, 2])
    assert session.status().text == "Winner: X (Human)"

    session.request_reset()
    session.ai = ScriptedAI([3, 4, 5])
    _play(session, scheduler, [0, 1, 8])
    assert session.status() == StatusMessage(StatusKind.WIN, "O", "Computer")

    session.request_reset()
    session.ai = ScriptedAI([1, 4, 5, 6])
    _play(session, scheduler, [0, 2, 3, 7, 8])
    assert session.status().kind is StatusKind.DRAW
    assert session.status().text == "It's a draw"

    assert (session.scores.side_a, session.scores.side_b, session.scores.ties) == (1, 1, 1)
    assert events[-1] == ScoreUpdate(side_a_wins=1, side_b_wins=1, ties=1)


def test_configure_keeps_scores_and_applies_config():
    session, scheduler, events = _session(GameConfig(mode=GameMode.TWO_PLAYER))
    for idx in (0, 3, 1, 4, 2):
        session.on_human_move(idx)
    session.configure(GameConfig(symbol="O", strategy=Strategy.MINIMAX))
    assert session.scores.side_a == 1
    assert not session.game_over
    assert session.config.symbol == "O"
    assert session.strategy_label() == "Model: Minimax"


def test_two_player_mode_never_schedules_computer():
    session, scheduler, events = _session(GameConfig(mode=GameMode.TWO_PLAYER))
    assert session.computer_symbol is None
    assert session.ai is None
    for idx in (3, 0, 4, 1, 8, 2):
        assert session.on_human_move(idx)
        assert scheduler.pending == []
    assert session.outcome.winner == "O"
    assert session.status().owner_label == "Player 2"
    assert session.scores.side_b == 1
    assert session.side_labels() == ("PLAYER 1 (X)", "PLAYER 2 (O)")


def test_minimax_computer_never_loses_a_full_session():
    session, scheduler, events = _session(GameConfig(strategy=Strategy.MINIMAX))
    rng = random.Random(7)
    for _ in range(5):
        while not session.game_over:
            session.on_human_move(rng.choice(session.board.empty_cells()))
            scheduler.run_pending()
        assert session.outcome.winner != "X"
        session.request_reset()
    assert session.scores.side_a == 0


def test_config_rejects_unknown_symbol():
    with pytest.raises(ValueError):
        GameConfig(symbol="Z")


def test_config_accepts_plain_strings():
    config = GameConfig(mode="two", first="opponent", strategy="minimax")
    assert config.mode is GameMode.TWO_PLAYER
    assert config.first is Side.OPPONENT
    assert config.strategy is Strategy.MINIMAX
    assert config.symbol_for(Side.OPPONENT) == "O"


class SlowAI:
    def __init__(self, move, seconds):
        self.move = move
        self.seconds = seconds
        self.started = threading.Event()

    def choose(self, board):
        self.started.set()
        time.sleep(self.seconds)
        return self.move


def test_reset_during_slow_computer_search_leaves_new_game_clean():
    session = Session(GameConfig(), scheduler=TimerScheduler(), ai_delay=0.0)
    slow = SlowAI(8, 0.3)
    session.ai = slow
    assert session.on_human_move(0)
    assert slow.started.wait(2.0)

    session.request_reset()
    time.sleep(0.1)
    assert session.board.empty_cells() == list(range(9))
    assert session.current == "X"
    assert not session.ai_pending


def test_default_scheduler_shares_session_lock():
    session = Session(GameConfig(mode=GameMode.TWO_PLAYER))
    assert isinstance(session.scheduler, TimerScheduler)
    assert session.lock is session.scheduler.lock


def test_reset_while_computer_is_choosing_discards_its_move():
    session, scheduler, events = _session()

    class ResettingAI:
        def choose(self, board):
            session.request_reset()
            return 8

    session.on_human_move(0)
    session.ai = ResettingAI()
    scheduler.run_pending()
    assert session.board.empty_cells() == list(range(9))
    assert session.current == "X"
