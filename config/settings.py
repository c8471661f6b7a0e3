# config/settings.py
"""
Configuration classes for the Security Guard service

Values here are defaults; create_app() overrides them from the process
environment. Registry entries (APP_<NAME>_EMAIL) are not config keys, they
are read straight from the environment by core.app_registry.
"""

from typing import Any, Dict, Mapping, Optional


class GuardConfig:
    """Base configuration settings"""

    # SendGrid transport
    SENDGRID_API_KEY = ''
    SENDGRID_API_URL = 'https://api.sendgrid.com/v3/mail/send'
    FROM_EMAIL = ''
    FROM_NAME = 'Security Guard'
    EMAIL_API_TIMEOUT = None  # seconds; None leaves the timeout to the platform

    # Request limits
    MAX_REQUEST_BODY_SIZE = 100 * 1024  # 100KB

    # CORS
    CORS_ORIGINS = '*'
    CORS_METHODS = ['POST', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type']

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Referrer-Policy': 'no-referrer',
    }

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = None


class DevelopmentConfig(GuardConfig):
    """Local development settings"""

    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(GuardConfig):
    """Settings used by the test suite"""

    TESTING = True
    LOG_LEVEL = 'WARNING'


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': GuardConfig,
}


def get_config(config_name: Optional[str]) -> type:
    """Return the config class for an environment name, defaulting to production"""
    return CONFIGS.get(config_name or 'production', GuardConfig)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


def config_from_environ(environ: Mapping[str, str]) -> Dict[str, Any]:
    """
    Build config overrides from environment variables

    Only variables that are actually set are returned, so class defaults
    survive for everything else.
    """
    overrides: Dict[str, Any] = {}

    for key in ('SENDGRID_API_KEY', 'SENDGRID_API_URL', 'FROM_EMAIL',
                'FROM_NAME', 'LOG_LEVEL', 'LOG_FILE'):
        if key in environ:
            overrides[key] = environ[key]

    if 'EMAIL_API_TIMEOUT' in environ:
        overrides['EMAIL_API_TIMEOUT'] = _optional_float(environ['EMAIL_API_TIMEOUT'])

    if 'MAX_REQUEST_BODY_SIZE' in environ:
        overrides['MAX_REQUEST_BODY_SIZE'] = int(environ['MAX_REQUEST_BODY_SIZE'])

    return overrides
