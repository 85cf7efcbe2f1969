# FILE: logging_config.py

import logging
import logging.config
from config import LOG_PATH, LOG_LEVEL

QUIET_LOGGERS = ['httpx', 'httpcore', 'openai', 'urllib3', 'sqlalchemy.engine', 'uvicorn.access']

LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s - %(name)-22s - %(levelname)-8s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
            'level': LOG_LEVEL,
            'stream': 'ext://sys.stdout'
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'default',
            'filename': LOG_PATH,
            'maxBytes': 10485760,  # 10 MB
            'backupCount': 5,
            'level': LOG_LEVEL
        }
    },
    'loggers': {
        '': { # Root logger
            'handlers': ['console', 'file'],
            'level': LOG_LEVEL,
            'propagate': True
        },
        # Quieten noisy third-party libraries
        **{
            name: {'handlers': ['console', 'file'], 'level': 'WARNING', 'propagate': False}
            for name in QUIET_LOGGERS
        },
    }
}

def setup_logging():
    """Applies the logging configuration."""
    logging.config.dictConfig(LOGGING_CONFIG)
