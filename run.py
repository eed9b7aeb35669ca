import os
import click
from sqlalchemy.exc import SQLAlchemyError
from tutorhub import create_app, db
from tutorhub.models import (
    User, TeacherProfile, VerificationRequest, Document, PayoutRequest, Wallet, Transaction,
    SubscriptionPlan,
)
from tutorhub.services.error_service import error_service
from config import config

# Create Flask application instance
app = create_app(config[os.environ.get('FLASK_CONFIG', 'default')])


@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'TeacherProfile': TeacherProfile,
        'VerificationRequest': VerificationRequest,
        'Document': Document,
        'PayoutRequest': PayoutRequest,
        'Wallet': Wallet,
        'Transaction': Transaction,
        'SubscriptionPlan': SubscriptionPlan,
    }


@app.errorhandler(413)
def request_entity_too_large(error):
    """Handle Request Entity Too Large error"""
    max_mb = app.config.get('MAX_CONTENT_LENGTH', 0) / (1024 ** 2)
    return error_service.create_error_response(
        'FILE_TOO_LARGE',
        f'The uploaded file exceeds the maximum size limit ({max_mb:.0f}MB)',
        {'max_bytes': app.config.get('MAX_CONTENT_LENGTH')},
        413
    )


@app.cli.command('create-admin')
@click.argument('email')
@click.argument('full_name')
@click.password_option()
def create_admin(email, full_name, password):
    """Create a superadmin account"""
    if User.query.filter_by(email=email).first():
        raise click.ClickException(f'User {email} already exists')
    user = User(email=email, full_name=full_name, role='superadmin', is_active=True, is_verified=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f'Superadmin {email} created')


def initialize_database():
    """Initialize database tables if needed"""
    with app.app_context():
        try:
            # Test if tables exist by making a simple query
            User.query.first()
            print("✅ Database tables already exist")
        except SQLAlchemyError as e:
            db.session.rollback()
            print(f"⚠️  Creating database tables: {str(e)}")
            db.create_all()
            print("✅ Database tables created successfully")


def display_config_info():
    """Display important configuration information"""
    max_size_mb = app.config.get('MAX_CONTENT_LENGTH', 0) / (1024 ** 2)

    print("=" * 60)
    print(f"🚀 {app.config.get('APP_NAME')} - Configuration")
    print("=" * 60)
    print(f"📁 Upload Limit: {max_size_mb:.0f}MB")
    print(f"📂 Upload Folder: {app.config.get('UPLOAD_FOLDER')}")
    print(f"☁️  S3 Bucket: {app.config.get('S3_BUCKET') or 'Not Set'}")
    print(f"🗄️  Database: {app.config.get('SQLALCHEMY_DATABASE_URI', 'SQLite')[:50]}...")
    print(f"🐛 Debug Mode: {app.config.get('DEBUG', False)}")
    print(f"🔐 Secret Key: {'Set' if app.config.get('SECRET_KEY') else 'Not Set'}")
    print(f"💸 Payout Limits: {app.config.get('PAYOUT_MIN_AMOUNT'):,.0f} - {app.config.get('PAYOUT_MAX_AMOUNT'):,.0f} "
          f"{app.config.get('DEFAULT_CURRENCY')}")
    print("=" * 60)


if __name__ == '__main__':
    print(f"🚀 Starting {app.config.get('APP_NAME')}...")
    display_config_info()

    print("📊 Checking database...")
    initialize_database()

    print("🌐 Server starting on http://0.0.0.0:5000")
    print("🔄 Press Ctrl+C to stop the server")
    try:
        app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000, threaded=True)
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")
