"""
Process-level settings for evo2048.

Values come from EVO2048_* environment variables with defaults suited
to a local training run.
"""
import logging.config
import os

LOG_LEVEL = os.environ.get('EVO2048_LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.environ.get('EVO2048_LOG_FILE', '')

_workers = os.environ.get('EVO2048_WORKERS', '')
WORKERS = int(_workers) if _workers else None

_seed = os.environ.get('EVO2048_SEED', '')
SEED = int(_seed) if _seed else None

CHECKPOINT_DIR = os.environ.get('EVO2048_CHECKPOINT_DIR', './checkpoints')

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
        'simple': {
            'format': '%(levelname)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'evo2048': {
            'level': LOG_LEVEL,
        },
    },
}

if LOG_FILE:
    LOGGING['handlers']['file'] = {
        'class': 'logging.FileHandler',
        'filename': LOG_FILE,
        'formatter': 'verbose',
    }
    LOGGING['root']['handlers'].append('file')

_configured = False


def configure_logging(level=None):
    """Apply LOGGING once; level overrides EVO2048_LOG_LEVEL."""
    global _configured
    if _configured:
        return
    if level:
        LOGGING['loggers']['evo2048']['level'] = level.upper()
    logging.config.dictConfig(LOGGING)
    _configured = True
