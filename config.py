import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'tutorhub.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,  # Recycle connections every 5 minutes
        'pool_pre_ping': True,
    }

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # AWS S3 Settings
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_REGION = os.environ.get('AWS_REGION', 'eu-west-1')
    S3_BUCKET = os.environ.get('S3_BUCKET')

    # Uploads (S3 key prefix, or local directory when S3 is not configured)
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(basedir, 'uploads'))
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 10 * 1024 * 1024))  # 10MB
    ALLOWED_DOCUMENT_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg', 'doc', 'docx'}

    # Email Settings
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', 'true')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or MAIL_USERNAME
    MAIL_SEND_ASYNC = _env_bool('MAIL_SEND_ASYNC', 'true')
    ADMINS = [email for email in os.environ.get('ADMINS', '').split(',') if email]

    # Pagination & Session
    POSTS_PER_PAGE = 25
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour

    APP_NAME = os.environ.get('APP_NAME', 'TutorHub')
    BASE_URL = os.environ.get('BASE_URL', 'http://localhost:5000')

    # Teacher verification
    VERIFICATION_AUTO_APPROVE_AFTER_VIDEO = _env_bool('VERIFICATION_AUTO_APPROVE_AFTER_VIDEO')

    # Payouts
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'NGN')
    PAYOUT_MIN_AMOUNT = float(os.environ.get('PAYOUT_MIN_AMOUNT', 1000))
    PAYOUT_MAX_AMOUNT = float(os.environ.get('PAYOUT_MAX_AMOUNT', 1000000))

    # Payment gateway webhooks
    WEBHOOK_VERIFY_SIGNATURES = _env_bool('WEBHOOK_VERIFY_SIGNATURES', 'true')
    PAYSTACK_SECRET_KEY = os.environ.get('PAYSTACK_SECRET_KEY')
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    PAYPAL_CLIENT_ID = os.environ.get('PAYPAL_CLIENT_ID')
    PAYPAL_CLIENT_SECRET = os.environ.get('PAYPAL_CLIENT_SECRET')
    PAYPAL_WEBHOOK_ID = os.environ.get('PAYPAL_WEBHOOK_ID')
    PAYPAL_API_BASE = os.environ.get('PAYPAL_API_BASE', 'https://api-m.sandbox.paypal.com')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    MAIL_SEND_ASYNC = False
    MAIL_DEFAULT_SENDER = 'noreply@tutorhub.test'
    ADMINS = ['admin@tutorhub.test']
    S3_BUCKET = None
    PAYSTACK_SECRET_KEY = 'sk_test_paystack'
    STRIPE_WEBHOOK_SECRET = 'whsec_test_stripe'
    PAYPAL_WEBHOOK_ID = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
