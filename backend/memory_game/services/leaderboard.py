import logging

from sqlalchemy import func

from memory_game.engine import DIFFICULTY_SETTINGS, Game
from memory_game.engine.game import MIN_SCORE
from memory_game.models import Score

logger = logging.getLogger(__name__)

VALID_PAIR_COUNTS = {settings['pairs'] for settings in DIFFICULTY_SETTINGS.values()}
MAX_SCORE = max(settings['base_score'] for settings in DIFFICULTY_SETTINGS.values())


def validate_result(pairs_count: int, moves_count: int, time_seconds: int, score: int) -> list:
    """Basic consistency checks on a finished game; returns a list of problems."""
    errors = []
    if pairs_count not in VALID_PAIR_COUNTS:
        errors.append(f'Invalid pair count: {pairs_count}')
    if moves_count < pairs_count:
        errors.append(f'Too few moves for {pairs_count} pairs: {moves_count}')
    if time_seconds < 0:
        errors.append('Time cannot be negative')
    if not MIN_SCORE <= score <= MAX_SCORE:
        errors.append(f'Score out of range: {score}')
    return errors


class Leaderboard:
    """Finished-game results, backed by an SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def record(self, game: Game, user) -> Score:
        stats = game.final_stats()
        if game.owner_id is None or user is None or user.id != game.owner_id:
            raise ValueError('Only a game owned by the given user can be recorded')
        errors = validate_result(stats['pair_count'], stats['moves'], stats['elapsed_seconds'], stats['score'])
        if errors:
            raise ValueError('; '.join(errors))

        entry = Score(
            user_id=user.id,
            username=user.username,
            difficulty=stats['difficulty'],
            pairs_count=stats['pair_count'],
            moves_count=stats['moves'],
            time_seconds=stats['elapsed_seconds'],
            score=stats['score'],
        )
        self.session.add(entry)
        self.session.commit()
        logger.info("[score_saved] user=%s score=%s moves=%s time=%ss", user.id, entry.score,
                    entry.moves_count, entry.time_seconds)
        return entry

    def _ranked(self):
        return self.session.query(Score).order_by(
            Score.score.desc(), Score.time_seconds.asc(), Score.achieved_at.asc(), Score.id.asc()
        )

    def top(self, limit: int = 10):
        return self._ranked().limit(limit).all()

    def for_player(self, user_id: int, limit: int = 20):
        return (
            self.session.query(Score)
            .filter_by(user_id=user_id)
            .order_by(Score.score.desc(), Score.achieved_at.desc())
            .limit(limit)
            .all()
        )

    def player_stats(self, user_id: int) -> dict:
        games, best, average, best_time, total_moves = self.session.query(
            func.count(Score.id),
            func.max(Score.score),
            func.avg(Score.score),
            func.min(Score.time_seconds),
            func.sum(Score.moves_count),
        ).filter(Score.user_id == user_id).one()
        return {
            'games_played': games or 0,
            'best_score': best,
            'average_score': round(float(average), 1) if average is not None else None,
            'best_time': best_time,
            'total_moves': total_moves or 0,
        }

    def global_stats(self) -> dict:
        games, players, average, best = self.session.query(
            func.count(Score.id),
            func.count(func.distinct(Score.user_id)),
            func.avg(Score.score),
            func.max(Score.score),
        ).one()
        return {
            'total_games': games or 0,
            'total_players': players or 0,
            'average_score': round(float(average), 1) if average is not None else None,
            'best_score': best,
        }

    def is_top_score(self, score: int, limit: int = 10) -> bool:
        top_scores = [entry.score for entry in self.top(limit)]
        if len(top_scores) < limit:
            return True
        return score > top_scores[-1]
