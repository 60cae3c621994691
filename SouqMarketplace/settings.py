"""
Django settings for SouqMarketplace project.

All deployment-specific values come from the environment (optionally a .env
file in the project root).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')
DEBUG = env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]


# ==========================================
# APPLICATIONS
# ==========================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Local apps
    'apps.users',
    'apps.catalog',
    'apps.wallet',
    'apps.orders',
    'apps.payouts',
    'apps.shipping',
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

ROOT_URLCONF = 'SouqMarketplace.urls'

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

WSGI_APPLICATION = 'SouqMarketplace.wsgi.application'

AUTH_USER_MODEL = 'users.CustomUser'


# ==========================================
# DATABASE
# ==========================================
# SQLite for local development; PostgreSQL in production so that
# select_for_update() actually serializes writers on the ledger rows.

DB_ENGINE = os.getenv('DB_ENGINE', 'sqlite')

if DB_ENGINE == 'postgres':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME', 'souq'),
            'USER': os.getenv('DB_USER', 'souq'),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST', 'localhost'),
            'PORT': os.getenv('DB_PORT', '5432'),
            'ATOMIC_REQUESTS': False,
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / os.getenv('DB_NAME', 'db.sqlite3'),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ==========================================
# I18N / TIME
# ==========================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Bahrain')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ==========================================
# EMAIL
# ==========================================

EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = env_bool('EMAIL_USE_TLS', True)
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'noreply@souqmarketplace.com')

ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', EMAIL_HOST_USER)
SITE_URL = os.getenv('SITE_URL', 'http://localhost:8000')

# Log emails instead of sending them (set False in production)
USE_MOCK_NOTIFICATIONS = env_bool('USE_MOCK_NOTIFICATIONS', True)


# ==========================================
# SHIPPING RATES (Aramex)
# ==========================================

USE_MOCK_SHIPPING = env_bool('USE_MOCK_SHIPPING', True)
ARAMEX_API_URL = os.getenv(
    'ARAMEX_API_URL',
    'https://ws.aramex.net/ShippingAPI.V2/RateCalculator/Service_1_0.svc/json/CalculateRate'
)
ARAMEX_USERNAME = os.getenv('ARAMEX_USERNAME', '')
ARAMEX_PASSWORD = os.getenv('ARAMEX_PASSWORD', '')
ARAMEX_ACCOUNT_NUMBER = os.getenv('ARAMEX_ACCOUNT_NUMBER', '')
ARAMEX_ACCOUNT_PIN = os.getenv('ARAMEX_ACCOUNT_PIN', '')
ARAMEX_ACCOUNT_ENTITY = os.getenv('ARAMEX_ACCOUNT_ENTITY', 'BAH')
ARAMEX_ACCOUNT_COUNTRY_CODE = os.getenv('ARAMEX_ACCOUNT_COUNTRY_CODE', 'BH')
ARAMEX_ORIGIN_CITY = os.getenv('ARAMEX_ORIGIN_CITY', 'Manama')
ARAMEX_ORIGIN_COUNTRY_CODE = os.getenv('ARAMEX_ORIGIN_COUNTRY_CODE', 'BH')


# ==========================================
# LEDGER
# ==========================================

LEDGER_CURRENCY = os.getenv('LEDGER_CURRENCY', 'BHD')

# Owner of the wallet that receives the platform commission side-channel
ADMIN_USER_ID = os.getenv('ADMIN_USER_ID') or None


# ==========================================
# LOGGING
# ==========================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
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
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'core': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
