"""
Runtime configuration, read from environment variables.
"""

import logging
import os

RANDOM_SEED = int(os.environ.get('READMISSION_RANDOM_SEED', 42))
N_JOBS = int(os.environ.get('READMISSION_N_JOBS', 1))
LAB_PREFIX = os.environ.get('READMISSION_LAB_PREFIX', 'lab_')

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
AUDIT_LOG_PATH = os.environ.get('AUDIT_LOG_PATH')

MODEL_METRICS_PATH = os.environ.get('MODEL_METRICS_PATH')

# Deployment API
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-production')
MAX_BATCH_SIZE = int(os.environ.get('MAX_BATCH_SIZE', 100))
RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '200 per day;50 per hour')
PORT = int(os.environ.get('PORT', 5000))
DEBUG = os.environ.get('FLASK_ENV') == 'development'


def valid_api_keys():
    """Accepted API keys; read on every call so rotation needs no restart."""
    return [key for key in os.environ.get('VALID_API_KEYS', '').split(',') if key]


def configure_logging(level=LOG_LEVEL, audit_log_path=AUDIT_LOG_PATH):
    """
    Configure root logging for the entry points.

    Library modules only create loggers; handlers are attached here.
    """
    handlers = [logging.StreamHandler()]
    if audit_log_path:
        handlers.append(logging.FileHandler(audit_log_path))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
