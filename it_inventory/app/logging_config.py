"""
Logging configuration for the inventory backend.

Console output is colorized in development; a rotating file handler is added
when LOG_DIR is configured.
"""

import os
import logging.config


def build_logging_config(level='INFO', environment='development', log_dir=None):
    formatter = 'colored' if environment == 'development' else 'standard'
    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'colored': {
                '()': 'colorlog.ColoredFormatter',
                'format': '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'log_colors': {
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            }
        },
        'handlers': {
            'console': {
                'level': level,
                'class': 'logging.StreamHandler',
                'formatter': formatter
            }
        },
        'loggers': {
            'it_inventory': {
                'handlers': ['console'],
                'level': level,
                'propagate': False
            }
        }
    }

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        config['handlers']['file'] = {
            'level': level,
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.path.join(log_dir, 'inventory.log'),
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'formatter': 'standard',
            'encoding': 'utf8'
        }
        config['loggers']['it_inventory']['handlers'].append('file')

    return config


def setup_logging(app):
    logging.config.dictConfig(build_logging_config(
        level=app.config.get('LOG_LEVEL', 'INFO').upper(),
        environment=app.config.get('ENVIRONMENT', 'development'),
        log_dir=app.config.get('LOG_DIR'),
    ))
