import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

load_dotenv(BASE_DIR.parent / '.env')

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-this'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{BASE_DIR}/data/inventory.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAIL_SERVER = os.environ.get('MAIL_SERVER')
    MAIL_PORT = int(os.environ.get('MAIL_PORT') or 25)
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS') is not None
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or 'noreply@demo.com'

    ENVIRONMENT = os.environ.get('ENVIRONMENT') or 'development'
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_DIR = os.environ.get('LOG_DIR')

    # First admin account, created by run.py when the user table is empty
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')

    # Assignment rules
    EXPORT_LOCALE = os.environ.get('EXPORT_LOCALE') or 'ko'
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE') or 20)
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE') or 100)
    MAX_HARDWARE_PER_EMPLOYEE = int(os.environ.get('MAX_HARDWARE_PER_EMPLOYEE') or 10)
    MAX_SOFTWARE_PER_EMPLOYEE = int(os.environ.get('MAX_SOFTWARE_PER_EMPLOYEE') or 20)
    NOTES_MAX_LENGTH = 500
    MAX_SEARCH_LENGTH = 100


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_SUPPRESS_SEND = True
    MAIL_SERVER = None
    ENVIRONMENT = 'testing'
    LOG_DIR = None
