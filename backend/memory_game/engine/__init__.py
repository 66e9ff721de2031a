"""Memory game engine: cards, turn protocol, scoring and snapshots.

Pure domain logic with no Flask or database imports; HTTP routes rebuild a
``Game`` from the session snapshot on every request.
"""

from .card import AVAILABLE_IMAGES, CARD_BACK_IMAGE, Card, images_for_game
from .errors import (
    GameError,
    InvalidDifficulty,
    InvalidId,
    InvalidOwner,
    InvalidSnapshot,
    NotCompleted,
)
from .game import DIFFICULTY_SETTINGS, Difficulty, FlipResult, Game, compute_score, format_duration

__all__ = [
    'AVAILABLE_IMAGES',
    'CARD_BACK_IMAGE',
    'Card',
    'DIFFICULTY_SETTINGS',
    'Difficulty',
    'FlipResult',
    'Game',
    'GameError',
    'InvalidDifficulty',
    'InvalidId',
    'InvalidOwner',
    'InvalidSnapshot',
    'NotCompleted',
    'compute_score',
    'format_duration',
    'images_for_game',
]
