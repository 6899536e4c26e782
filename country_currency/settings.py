"""
Django settings for country_currency project.

Every value can be overridden from the environment or a ``.env`` file in the
project root.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(key, default=False):
    return os.getenv(key, str(default)).lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-change-me")

DEBUG = env_bool("DJANGO_DEBUG", False)

ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

# "production" writes the summary image under /tmp (read-only app dirs on most hosts)
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'countries',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'country_currency.urls'

WSGI_APPLICATION = 'country_currency.wsgi.application'

APPEND_SLASH = False


# Database: MySQL when MYSQL_HOST is set, SQLite otherwise.

if os.getenv("MYSQL_HOST"):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.mysql',
            'HOST': os.getenv("MYSQL_HOST"),
            'PORT': os.getenv("MYSQL_PORT", "3306"),
            'USER': os.getenv("MYSQL_USER"),
            'PASSWORD': os.getenv("MYSQL_PASSWORD"),
            'NAME': os.getenv("MYSQL_DATABASE"),
            'CONN_MAX_AGE': int(os.getenv("DB_CONN_MAX_AGE", "60")),
            'OPTIONS': {'charset': 'utf8mb4'},
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv("SQLITE_PATH", str(BASE_DIR / 'db.sqlite3')),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# The refresh lock lives here; use a shared backend when running several workers.
CACHES = {
    'default': {
        'BACKEND': os.getenv("CACHE_BACKEND", 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.getenv("CACHE_LOCATION", 'country-currency'),
    }
}


# Internationalization

LANGUAGE_CODE = 'en-us'

TIME_ZONE = os.getenv("TIME_ZONE", 'UTC')

USE_I18N = True

USE_TZ = True


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
}


# External sources

COUNTRIES_API_URL = os.getenv(
    "COUNTRIES_API_URL",
    'https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies',
)
# {base} is replaced with BASE_CURRENCY
EXCHANGE_API_URL = os.getenv("EXCHANGE_API_URL", 'https://open.er-api.com/v6/latest/{base}')
BASE_CURRENCY = os.getenv("BASE_CURRENCY", "USD")
EXTERNAL_TIMEOUT = float(os.getenv("EXTERNAL_TIMEOUT", "15"))

# Seconds before a stuck refresh lock expires on its own
REFRESH_LOCK_TIMEOUT = int(os.getenv("REFRESH_LOCK_TIMEOUT", "600"))

CACHE_DIR = os.getenv(
    "CACHE_DIR",
    "/tmp/cache" if ENVIRONMENT == "production" else str(BASE_DIR / "cache"),
)
SUMMARY_IMAGE_PATH = os.getenv("SUMMARY_IMAGE_PATH", os.path.join(CACHE_DIR, "summary.png"))


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'countries': {
            'handlers': ['console'],
            'level': os.getenv("LOG_LEVEL", "INFO"),
            'propagate': False,
        },
    },
}
