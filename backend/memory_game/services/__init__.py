"""Services between the HTTP layer and the game engine.

Session storage of in-progress games and the leaderboard of finished ones.
Routes and socket handlers import these, keeping transport concerns apart
from the engine in ``memory_game.engine``.
"""
