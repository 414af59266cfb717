"""Tic-tac-toe package exposing game logic, computer players, and the web app."""

from .ai import MinimaxAI, HeuristicAI
from .game import Board, evaluate
from .session import GameConfig, Session
from .ui import app

__all__ = [
    "Board",
    "GameConfig",
    "HeuristicAI",
    "MinimaxAI",
    "Session",
    "app",
    "evaluate",
]
