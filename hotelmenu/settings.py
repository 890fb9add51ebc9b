"""
Django settings for hotelmenu.

Everything environment specific comes from the process environment or a
.env file next to manage.py.
"""
import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int_map(name, defaults):
    """'menu=120,sales=30' overrides entries of defaults"""
    values = dict(defaults)
    for pair in (os.getenv(name) or '').split(','):
        if '=' in pair:
            key, _, number = pair.partition('=')
            values[key.strip()] = int(number)
    return values


SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-change-me')

DEBUG = env_bool('DEBUG', False)

ALLOWED_HOSTS = [host.strip() for host in os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if host.strip()]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'rest_framework_simplejwt',
    'drf_yasg',

    'tenancy',
    'catalog',
    'orders',
    'sync',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'tenancy.middleware.TenantContextMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'hotelmenu.urls'

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

WSGI_APPLICATION = 'hotelmenu.wsgi.application'
ASGI_APPLICATION = 'hotelmenu.asgi.application'


# Database

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}


# Caches: 'catalog' holds the TTL cache, 'local' never expires and holds
# snapshots plus the offline queue

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
    'catalog': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'catalog',
        'OPTIONS': {'MAX_ENTRIES': int(os.getenv('CATALOG_CACHE_MAX_ENTRIES', '2000'))},
    },
    'local': {
        'BACKEND': 'django.core.cache.backends.filebased.FileBasedCache',
        'LOCATION': os.getenv('LOCAL_STORE_DIR', str(BASE_DIR / 'var' / 'local-store')),
        'TIMEOUT': None,
    },
}


AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# REST framework

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'EXCEPTION_HANDLER': 'tenancy.exceptions.custom_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.getenv('JWT_ACCESS_HOURS', '12'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {'type': 'apiKey', 'name': 'Authorization', 'in': 'header'},
    },
}


# Catalog

TENANT_ROUTE_PREFIX = os.getenv('TENANT_ROUTE_PREFIX', 'kagzso')

# 'orm', 'supabase' or a dotted path to a CatalogBackend subclass
CATALOG_BACKEND = os.getenv('CATALOG_BACKEND', 'orm')

# Backend calls run on worker threads so a hung call can be abandoned at its timeout
CATALOG_ORM_WORKER_THREADS = os.getenv('CATALOG_ORM_WORKER_THREADS', 'true').lower() != 'false'
CATALOG_WORKER_THREADS = int(os.getenv('CATALOG_WORKER_THREADS', '8'))

SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_KEY = os.getenv('SUPABASE_KEY')
SUPABASE_SCHEMA = os.getenv('SUPABASE_SCHEMA') or None

# Seconds
CATALOG_CACHE_TTLS = env_int_map('CATALOG_CACHE_TTLS', {
    'branches': 300,
    'menu': 180,
    'sales': 60,
    'config': 300,
})

CATALOG_TIMEOUTS = env_int_map('CATALOG_TIMEOUTS', {
    'branches': 30,
    'menu': 30,
    'sales': 30,
    'config': 5,
    'write': 30,
})

CATALOG_CACHE = os.getenv('CATALOG_CACHE', 'catalog')

# How long an expired entry stays reachable for the offline fallback
CATALOG_STALE_TTL = int(os.getenv('CATALOG_STALE_TTL', '3600'))

CATALOG_LOCAL_STORE = os.getenv('CATALOG_LOCAL_STORE', 'local')


# Logging

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

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
        name: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
        for name in ('hotelmenu', 'tenancy', 'catalog', 'orders', 'sync')
    },
}
