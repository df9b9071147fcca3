"""
Settings for the test-suite: in-memory SQLite, fast hashing, JSON logs.
"""
from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

LOGGING['handlers']['console']['formatter'] = 'json'  # noqa: F405
