from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_mail import Mail
from flask_wtf.csrf import CSRFProtect
from config import Config
import boto3
from botocore.exceptions import ClientError, NoCredentialsError
import logging

db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()
mail = Mail()
csrf = CSRFProtect()


def initialize_s3(app):
    """Initialize AWS S3 client with proper error handling"""
    try:
        required_config = ['AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'S3_BUCKET']
        missing_config = [key for key in required_config if not app.config.get(key)]

        if missing_config:
            app.logger.warning(f"S3 configuration incomplete. Missing: {missing_config}")
            app.s3_client = None
            return False

        s3_client = boto3.client(
            's3',
            aws_access_key_id=app.config['AWS_ACCESS_KEY_ID'],
            aws_secret_access_key=app.config['AWS_SECRET_ACCESS_KEY'],
            region_name=app.config.get('AWS_REGION', 'eu-west-1')
        )

        try:
            s3_client.head_bucket(Bucket=app.config['S3_BUCKET'])
            app.s3_client = s3_client
            app.logger.info(f"S3 client initialized successfully for bucket: {app.config['S3_BUCKET']}")
            return True
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code == 'NoSuchBucket':
                app.logger.error(f"S3 bucket '{app.config['S3_BUCKET']}' does not exist")
            elif error_code == 'Forbidden':
                app.logger.error("S3 access denied. Check your AWS credentials and permissions.")
            else:
                app.logger.error(f"S3 connection test failed: {error_code}")
            app.s3_client = None
            return False

    except NoCredentialsError:
        app.logger.error("AWS credentials not found")
        app.s3_client = None
        return False


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)
    mail.init_app(app)
    csrf.init_app(app)

    if not initialize_s3(app):
        app.logger.warning("S3 disabled, documents will be stored in UPLOAD_FOLDER")

    from tutorhub.services.error_service import register_error_handlers
    register_error_handlers(app)

    register_blueprints(app)

    return app


def register_blueprints(app):
    """Register all application blueprints"""
    from tutorhub.routes.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')

    from tutorhub.routes.verification import bp as verification_bp
    app.register_blueprint(verification_bp, url_prefix='/admin/verification')

    from tutorhub.routes.documents import bp as documents_bp
    app.register_blueprint(documents_bp, url_prefix='/admin/documents')

    from tutorhub.routes.financial import bp as financial_bp
    app.register_blueprint(financial_bp, url_prefix='/admin/financial')

    from tutorhub.routes.subscriptions import bp as subscriptions_bp
    app.register_blueprint(subscriptions_bp, url_prefix='/admin/subscriptions')

    from tutorhub.routes.teacher import bp as teacher_bp
    app.register_blueprint(teacher_bp, url_prefix='/teacher')

    from tutorhub.routes.wallet import bp as wallet_bp
    app.register_blueprint(wallet_bp, url_prefix='/wallet')

    # Gateways sign their payloads; they cannot send a CSRF token
    from tutorhub.routes.webhooks import bp as webhooks_bp
    csrf.exempt(webhooks_bp)
    app.register_blueprint(webhooks_bp, url_prefix='/webhooks')

    from tutorhub.routes.health import bp as health_bp
    app.register_blueprint(health_bp)


# User loader for Flask-Login
@login.user_loader
def load_user(user_id):
    from tutorhub.models.user import User
    return db.session.get(User, int(user_id))


@login.unauthorized_handler
def unauthorized():
    from tutorhub.services.error_service import error_service
    return error_service.handle_unauthorized_error()
