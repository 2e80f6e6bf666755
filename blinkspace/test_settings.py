"""
Django test settings for the Blinkspace project.
Overrides main settings for testing.
"""

from .settings import *
import os
import tempfile

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.path.join(BASE_DIR, 'test_db.sqlite3'),
        'TEST': {
            'NAME': os.path.join(BASE_DIR, 'test_db.sqlite3'),
        },
        'OPTIONS': {
            'timeout': 5,
            'transaction_mode': 'IMMEDIATE',
        },
    }
}

TEST_RUNNER = 'django.test.runner.DiscoverRunner'

# Use faster password hasher for tests
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

# Disable token blacklist checks during tests
SIMPLE_JWT = {
    **SIMPLE_JWT,
    'BLACKLIST_AFTER_ROTATION': False,
}

# Disable throttling for tests
REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_CLASSES': [],
    'DEFAULT_THROTTLE_RATES': {
        'anon': None,
        'user': None,
    },
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
        'LOCATION': 'dummy-cache',
    },
}

# Uploaded media goes to a throwaway directory
MEDIA_ROOT = tempfile.mkdtemp(prefix='blinkspace-media-')

STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles_test')

# Use a simpler logging setup for tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['null'],
            'propagate': False,
            'level': 'INFO',
        },
        'blinkspace': {
            'handlers': ['null'],
            'propagate': False,
            'level': 'INFO',
        },
    }
}
