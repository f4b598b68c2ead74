import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Security
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Flask
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = os.getenv('FLASK_ENV') == 'development'
    TESTING = False

    # CORS (comma separated, added to the local dev origins)
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Env miss policy for the interactive /resolve route
    RESOLVE_MISS_POLICY = os.getenv('RESOLVE_MISS_POLICY', 'null')


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    LOG_LEVEL = 'DEBUG'
