from datetime import timedelta
from pathlib import Path

from decouple import config, Csv

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config('SECRET_KEY', default='careslot-insecure-dev-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())


# ─────────────────────────────────────────────
# Applications
# ─────────────────────────────────────────────

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'django_filters',
    'drf_spectacular',

    'users',
    'doctors',
    'appointments',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'careslot.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'careslot.wsgi.application'


# ─────────────────────────────────────────────
# Database
# Every store call is bounded: SQLite waits at most DB_TIMEOUT_SECONDS for
# a write lock, PostgreSQL aborts statements and lock waits after it.
# ─────────────────────────────────────────────

DB_TIMEOUT_SECONDS = config('DB_TIMEOUT_SECONDS', default=5, cast=int)

if config('DB_NAME', default=''):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': config('DB_NAME'),
            'USER': config('DB_USER', default='postgres'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default='5432'),
            'OPTIONS': {
                'connect_timeout': DB_TIMEOUT_SECONDS,
                'options': (
                    f'-c statement_timeout={DB_TIMEOUT_SECONDS * 1000} '
                    f'-c lock_timeout={DB_TIMEOUT_SECONDS * 1000}'
                ),
            },
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
            'OPTIONS': {'timeout': DB_TIMEOUT_SECONDS},
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'users.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]


# ─────────────────────────────────────────────
# Internationalization
# ─────────────────────────────────────────────

LANGUAGE_CODE = 'en-us'
TIME_ZONE = config('TIME_ZONE', default='Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ─────────────────────────────────────────────
# REST framework / JWT / OpenAPI
# ─────────────────────────────────────────────

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'EXCEPTION_HANDLER': 'careslot.exceptions.exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=config('JWT_ACCESS_MINUTES', default=60, cast=int)),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=config('JWT_REFRESH_DAYS', default=7, cast=int)),
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'CareSlot API',
    'DESCRIPTION': 'Doctor time slots, patient bookings and follow-up reminders.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}


# ─────────────────────────────────────────────
# Email (follow-up and appointment reminders)
# ─────────────────────────────────────────────

EMAIL_BACKEND = config('EMAIL_BACKEND', default='django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_TIMEOUT = config('EMAIL_TIMEOUT', default=10, cast=int)
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='CareSlot <noreply@careslot.local>')


# ─────────────────────────────────────────────
# Twilio (SMS copy of in-app notifications; disabled when unset)
# ─────────────────────────────────────────────

TWILIO_ACCOUNT_SID = config('TWILIO_ACCOUNT_SID', default='')
TWILIO_AUTH_TOKEN = config('TWILIO_AUTH_TOKEN', default='')
TWILIO_PHONE_NUMBER = config('TWILIO_PHONE_NUMBER', default='')


# ─────────────────────────────────────────────
# Scheduling
# ─────────────────────────────────────────────

SCHEDULING = {
    'MAX_SLOT_DURATION_MINUTES': config('MAX_SLOT_DURATION_MINUTES', default=180, cast=int),
    'MAX_SINGLE_SLOT_HOURS': config('MAX_SINGLE_SLOT_HOURS', default=3, cast=int),
    'DEFAULT_DIRECT_DURATION_MINUTES': config('DEFAULT_DIRECT_DURATION_MINUTES', default=30, cast=int),
    'UPCOMING_REMINDER_WINDOW_HOURS': config('UPCOMING_REMINDER_WINDOW_HOURS', default=24, cast=int),
    'FOLLOW_UP_LIST_UPCOMING_DAYS': config('FOLLOW_UP_LIST_UPCOMING_DAYS', default=30, cast=int),
}


# ─────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────

LOG_LEVEL = config('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
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
        'careslot': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'users': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'doctors': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'appointments': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}
