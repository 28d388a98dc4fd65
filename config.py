import os

# ============================================
# Service Configuration
# ============================================

# Secret used to sign session cookies
JWT_SECRET = os.getenv('JWT_SECRET', 'SuperSecretString')
JWT_ISS = os.getenv('JWT_ISS', 'problem.noj.tw')
JWT_EXP = int(os.getenv('JWT_EXP', '30'))  # in days

# Domain served at /p when no domain is given in the URL
DEFAULT_DOMAIN = os.getenv('DEFAULT_DOMAIN', 'system')

PROBLEM_PER_PAGE = int(os.getenv('PROBLEM_PER_PAGE', '100'))
SOLUTION_PER_PAGE = int(os.getenv('SOLUTION_PER_PAGE', '20'))
# Largest problem archive accepted by import (bytes)
IMPORT_MAX_SIZE = int(os.getenv('IMPORT_MAX_SIZE', str(128 * 1024 * 1024)))

SUPPORTED_LANGUAGES = [
    l.strip() for l in os.getenv(
        'SUPPORTED_LANGUAGES',
        'c,cc,cpp,py,py2,py3,java,pas,rs,go,js,hs,rb,php,cs',
    ).split(',') if l.strip()
]

# ============================================
# Judge Configuration
# ============================================

# Shared token the judge daemon presents when fetching tasks or reporting
JUDGE_TOKEN = os.getenv('JUDGE_TOKEN', 'judge-token-for-development')
# Optional endpoint notified whenever a task is queued
JUDGE_URL = os.getenv('JUDGE_URL')
PRETEST_TIME_LIMIT = os.getenv('PRETEST_TIME_LIMIT', '1s')
PRETEST_MEMORY_LIMIT = os.getenv('PRETEST_MEMORY_LIMIT', '256m')

# ============================================
# Rate Limit Configuration
# ============================================

RATE_LIMIT_ENABLED = os.getenv('RATE_LIMIT_ENABLED', 'true').lower() == 'true'
# brute force protection for login
RATE_LIMIT_MAX_ATTEMPTS = int(os.getenv('RATE_LIMIT_MAX_ATTEMPTS', '5'))
RATE_LIMIT_LOCKOUT_SECONDS = int(os.getenv('RATE_LIMIT_LOCKOUT_SECONDS', '900'))
# pretest requests per user
PRETEST_RATE_LIMIT_PERIOD = int(os.getenv('PRETEST_RATE_LIMIT_PERIOD', '3600'))
PRETEST_RATE_LIMIT_MAX = int(os.getenv('PRETEST_RATE_LIMIT_MAX', '100'))

# ============================================
# Logging Configuration
# ============================================

LOG_DIR = 'logs'

LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
LOG_CONSOLE_LEVEL = os.getenv('LOG_CONSOLE_LEVEL', LOG_LEVEL)

LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format':
            '[%(asctime)s] %(levelname)s in %(module)s:%(lineno)d: %(message)s',
        }
    },
    'loggers': {
        # MongoDB is too verbose, set it to WARNING
        'pymongo': {
            'level': 'WARNING'
        },
        'mongoengine': {
            'level': 'WARNING'
        },
        # socket.io logs every packet on INFO
        'socketio': {
            'level': 'WARNING'
        },
        'engineio': {
            'level': 'WARNING'
        },
        'urllib3.connectionpool': {
            'level': 'INFO'
        },
        'flask.app': {
            'level': LOG_LEVEL,
            'handlers': ['console', 'file'],
            'propagate': False,
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'stream': 'ext://flask.logging.wsgi_errors_stream',
            'formatter': 'default',
            'level': LOG_CONSOLE_LEVEL,
        },
        'file': {
            'class': 'logging.FileHandler',
            'filename': LOG_DIR + '/oj-debug.log',
            'formatter': 'default',
            'encoding': 'utf-8'
        }
    },
    'root': {
        'level': LOG_LEVEL,
        'handlers': ['console', 'file']
    }
}
