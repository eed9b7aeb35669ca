from flask import jsonify, request


def success_response(data=None, message='', status_code=200):
    """Counterpart of ErrorService.create_error_response for successful calls"""
    return jsonify({
        'success': True,
        'message': message,
        'data': data,
    }), status_code


def page_args():
    """page / per_page query arguments"""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', None, type=int)
    if per_page is not None:
        per_page = max(1, min(per_page, 100))
    return max(page, 1), per_page


def paginated(pagination, serialize):
    return {
        'items': [serialize(item) for item in pagination.items],
        'pagination': {
            'page': pagination.page,
            'per_page': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages,
            'has_next': pagination.has_next,
            'has_prev': pagination.has_prev,
        },
    }
