# Health check endpoint for production monitoring

from flask import Blueprint, jsonify, current_app
from datetime import datetime
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from tutorhub import db
from tutorhub.models.user import User

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Comprehensive health check endpoint for monitoring"""

    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'version': '1.0.0',
        'checks': {}
    }

    # Database connectivity check
    try:
        db.session.execute(text('SELECT 1'))
        health_status['checks']['database'] = 'healthy'
        user_count = User.query.count()
        health_status['checks']['users'] = f'healthy ({user_count} users)'
    except SQLAlchemyError as e:
        db.session.rollback()
        health_status['checks']['database'] = f'unhealthy: {str(e)}'
        health_status['status'] = 'unhealthy'

    # Email configuration check
    if current_app.config.get('MAIL_SERVER') and current_app.config.get('MAIL_USERNAME'):
        health_status['checks']['email'] = 'configured'
    else:
        health_status['checks']['email'] = 'not_configured'

    # Document storage
    if getattr(current_app, 's3_client', None) is not None:
        health_status['checks']['storage'] = f"s3 ({current_app.config.get('S3_BUCKET')})"
    else:
        health_status['checks']['storage'] = 'local'

    # Gateways
    health_status['checks']['webhooks'] = {
        'paystack': 'configured' if current_app.config.get('PAYSTACK_SECRET_KEY') else 'not_configured',
        'stripe': 'configured' if current_app.config.get('STRIPE_WEBHOOK_SECRET') else 'not_configured',
        'paypal': 'configured' if current_app.config.get('PAYPAL_WEBHOOK_ID') else 'not_configured',
    }

    return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503


@bp.route('/health/simple')
def simple_health_check():
    """Simple health check for load balancers"""
    return jsonify({'status': 'ok', 'timestamp': datetime.utcnow().isoformat()}), 200
