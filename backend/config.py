import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///memory_game.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # How long clients keep a non-matching pair face-up before calling /hide (ms)
    HIDE_DELAY_MS = int(os.environ.get('HIDE_DELAY_MS', '1000'))
    LEADERBOARD_SIZE = int(os.environ.get('LEADERBOARD_SIZE', '10'))
    PERSONAL_SCORES_LIMIT = int(os.environ.get('PERSONAL_SCORES_LIMIT', '20'))
    # Informational only: the score formula applies no time bonus
    TIME_BONUS_THRESHOLD_SEC = int(os.environ.get('TIME_BONUS_THRESHOLD_SEC', '120'))
    # Per pair count, used to rate performance on the leaderboard
    TIME_LIMITS_SEC = {3: 60, 6: 120}
