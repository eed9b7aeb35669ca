from datetime import datetime
from flask import Blueprint, current_app
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf
from tutorhub import db
from tutorhub.forms.auth import LoginForm
from tutorhub.models.user import User
from tutorhub.services.error_service import UnauthorizedError
from tutorhub.utils.responses import success_response

bp = Blueprint('auth', __name__)


@bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests"""
    return success_response({'csrf_token': generate_csrf()})


@bp.route('/login', methods=['POST'])
def login():
    form = LoginForm().validate_or_raise()

    user = User.query.filter(User.email.ilike(form.email.data.strip())).first()
    if user is None or not user.check_password(form.password.data):
        current_app.logger.warning(f"Failed login attempt for {form.email.data}")
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:
        raise UnauthorizedError("Your account has been deactivated")

    login_user(user, remember=form.remember_me.data)
    user.last_login = datetime.utcnow()
    db.session.commit()

    current_app.logger.info(f"User {user.id} logged in")
    return success_response(user.to_dict(), 'Logged in')


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    current_app.logger.info(f"User {current_user.id} logged out")
    logout_user()
    return success_response(message='Logged out')


@bp.route('/me', methods=['GET'])
@login_required
def me():
    data = current_user.to_dict()
    profile = current_user.teacher_profile
    data['teacher_profile'] = profile.to_dict() if profile else None
    return success_response(data)
