"""
Configuration for the Flask app and its plugins.

Values come from the process environment; a local .env file is loaded first.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name, default):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _database_uri():
    url = os.getenv('DATABASE_URL')
    if url:
        return url
    return 'postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}'.format(
        user=os.getenv('RDS_USERNAME', 'postgres'),
        password=os.getenv('RDS_PASSWORD', ''),
        host=os.getenv('RDS_HOSTNAME', 'localhost'),
        port=os.getenv('RDS_PORT', '5432'),
        name=os.getenv('RDS_DB_NAME', 'ebdb'),
    )


SECRET_KEY = os.getenv('SESSION_SECRET') or os.getenv('SECRET_KEY', 'change-me-in-production')

SQLALCHEMY_DATABASE_URI = _database_uri()
SQLALCHEMY_TRACK_MODIFICATIONS = False
SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}
if SQLALCHEMY_DATABASE_URI.startswith('postgresql'):
    SQLALCHEMY_ENGINE_OPTIONS['connect_args'] = {'sslmode': os.getenv('RDS_SSLMODE', 'prefer')}

# Usernames that are treated as managers regardless of their stored role
SUPER_ADMINS = frozenset(
    name.strip() for name in os.getenv('SUPER_ADMINS', 'superuser').split(',') if name.strip()
)

PAGE_SIZE = 100

AZURE_STORAGE_CONNECTION_STRING = os.getenv('AZURE_STORAGE_CONNECTION_STRING')
PROFILE_PICTURE_CONTAINER = os.getenv('PROFILE_PICTURE_CONTAINER', 'profile-pictures')
MAX_CONTENT_LENGTH = int(os.getenv('MAX_UPLOAD_MB', '16')) * 1024 * 1024

INITIAL_MANAGER_USERNAME = os.getenv('INITIAL_MANAGER_USERNAME')
INITIAL_MANAGER_PASSWORD = os.getenv('INITIAL_MANAGER_PASSWORD')
AUTO_CREATE_TABLES = _flag('AUTO_CREATE_TABLES', 'true')

WTF_CSRF_ENABLED = _flag('WTF_CSRF_ENABLED', 'true')
WTF_CSRF_TIME_LIMIT = None

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = _flag('SESSION_COOKIE_SECURE', 'false')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
