import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///memory_match.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Shared secret expected in the X-Admin-Key header
    ADMIN_KEY = os.environ.get('ADMIN_KEY') or 'change-me'
    # Minimum interval between two accepted flips of the same team (ms)
    FLIP_COOLDOWN_MS = int(os.environ.get('FLIP_COOLDOWN_MS', '400'))
    # How long a mismatched pair stays face up before it is hidden again (ms)
    MISMATCH_HIDE_DELAY_MS = int(os.environ.get('MISMATCH_HIDE_DELAY_MS', '1200'))
    # Back-off before retrying a hide whose commit failed (ms)
    HIDE_RETRY_MS = int(os.environ.get('HIDE_RETRY_MS', '250'))
    # Timer broadcast period (sec)
    TIMER_TICK_SEC = float(os.environ.get('TIMER_TICK_SEC', '1'))
    TIMER_LOOP_ENABLED = os.environ.get('TIMER_LOOP_ENABLED', '1').lower() in ('1', 'true', 'yes')
    TEAM_NAME_MAX_LEN = int(os.environ.get('TEAM_NAME_MAX_LEN', '30'))
    CORS_ORIGINS = [
        o for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o
    ]
