# tutorhub/services/subscription_service.py

import logging
from decimal import Decimal
from flask import current_app
from sqlalchemy import func
from tutorhub import db
from tutorhub.models import SubscriptionPlan
from tutorhub.models.enums import BillingCycle
from tutorhub.services.error_service import ValidationError, NotFoundError

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


def get_plan(plan_id):
    plan = db.session.get(SubscriptionPlan, plan_id)
    if plan is None:
        raise NotFoundError("Subscription plan")
    return plan


def list_plans(is_active=None, search=None, page=1, per_page=None):
    query = SubscriptionPlan.query
    if is_active is not None:
        query = query.filter(SubscriptionPlan.is_active == is_active)
    if search:
        query = query.filter(SubscriptionPlan.name.ilike(f"%{search}%"))
    per_page = per_page or current_app.config.get('POSTS_PER_PAGE', 25)
    return query.order_by(SubscriptionPlan.created_at.desc(), SubscriptionPlan.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def _ensure_unique_name(name, plan_id=None):
    query = SubscriptionPlan.query.filter(func.lower(SubscriptionPlan.name) == name.lower())
    if plan_id is not None:
        query = query.filter(SubscriptionPlan.id != plan_id)
    if query.first() is not None:
        raise ValidationError({'name': ["A plan with this name already exists."]})


def _apply(plan, data):
    errors = {}
    if 'name' in data:
        name = (data['name'] or '').strip()
        if not name:
            errors['name'] = ["Name is required."]
        elif len(name) > 255:
            errors['name'] = ["Name must be at most 255 characters."]
        else:
            plan.name = name
    if 'description' in data:
        plan.description = data['description'] or None
    for field in ('price_naira', 'price_dollar'):
        if field in data:
            value = data[field]
            if value is None or Decimal(str(value)) < 0:
                errors[field] = ["Price must be zero or more."]
            else:
                setattr(plan, field, Decimal(str(value)))
    if 'billing_cycle' in data:
        try:
            plan.billing_cycle = BillingCycle(data['billing_cycle'])
        except ValueError:
            errors['billing_cycle'] = [f"Unsupported billing cycle '{data['billing_cycle']}'."]
    if 'duration_months' in data:
        if data['duration_months'] is None or int(data['duration_months']) < 1:
            errors['duration_months'] = ["Duration must be at least one month."]
        else:
            plan.duration_months = int(data['duration_months'])
    if 'features' in data:
        plan.set_features([f for f in (data['features'] or []) if f])
    if 'tags' in data:
        plan.set_tags([t for t in (data['tags'] or []) if t])
    if 'is_active' in data and data['is_active'] is not None:
        plan.is_active = bool(data['is_active'])
    if errors:
        raise ValidationError(errors)


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def create_plan(data, admin=None):
    for field in ('name', 'billing_cycle'):
        if not data.get(field):
            raise ValidationError({field: [f"{field.replace('_', ' ').capitalize()} is required."]})
    _ensure_unique_name(data['name'].strip())

    plan = SubscriptionPlan(is_active=True, duration_months=1)
    plan.set_features([])
    plan.set_tags([])
    _apply(plan, data)
    db.session.add(plan)
    _commit()

    logger.info(f"Subscription plan {plan.id} '{plan.name}' created by {admin.id if admin else 'system'}")
    return plan


def update_plan(plan_id, data, admin=None):
    plan = get_plan(plan_id)
    if data.get('name'):
        _ensure_unique_name(data['name'].strip(), plan.id)
    _apply(plan, data)
    _commit()

    logger.info(f"Subscription plan {plan.id} updated by {admin.id if admin else 'system'}")
    return plan


def delete_plan(plan_id, admin=None):
    plan = get_plan(plan_id)
    db.session.delete(plan)
    _commit()
    logger.info(f"Subscription plan {plan_id} deleted by {admin.id if admin else 'system'}")


def toggle_active(plan_id, admin=None):
    plan = get_plan(plan_id)
    plan.is_active = not plan.is_active
    _commit()
    logger.info(f"Subscription plan {plan.id} is_active={plan.is_active} "
                f"(by {admin.id if admin else 'system'})")
    return plan


def duplicate_plan(plan_id, admin=None):
    """Copy a plan as an inactive draft named '<name> (Copy)'"""
    source = get_plan(plan_id)
    name = f"{source.name}{COPY_SUFFIX}"
    counter = 2
    while SubscriptionPlan.query.filter(func.lower(SubscriptionPlan.name) == name.lower()).first() is not None:
        name = f"{source.name}{COPY_SUFFIX[:-1]} {counter})"
        counter += 1

    copy = SubscriptionPlan(
        name=name,
        description=source.description,
        price_naira=source.price_naira,
        price_dollar=source.price_dollar,
        billing_cycle=source.billing_cycle,
        duration_months=source.duration_months,
        features=source.features,
        tags=source.tags,
        is_active=False,
    )
    db.session.add(copy)
    _commit()

    logger.info(f"Subscription plan {source.id} duplicated as {copy.id}")
    return copy
