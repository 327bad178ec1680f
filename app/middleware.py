"""Middleware for buyer/seller context.

Authentication is handled by the identity provider; by the time a request
reaches this service the signed session already carries the ids.
"""
from functools import wraps
from flask import session, g, current_app

from app.exceptions import UnauthorizedError


def load_user_context():
    """
    Load current buyer and seller ids into g (Flask's per-request global).

    Sets g.user_id and g.seller_id (either may be None).
    """
    g.user_id = None
    g.seller_id = None

    try:
        user_id = session.get('user_id')
        if user_id:
            g.user_id = str(user_id)

        seller_id = session.get('seller_id')
        if seller_id:
            g.seller_id = str(seller_id)
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_user_context: {e}")


def require_login(f):
    """
    Decorator: Require buyer to be logged in.

    Responds 401 JSON when there is no user in the session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user_id') is None:
            raise UnauthorizedError('Please log in to continue.')
        return f(*args, **kwargs)
    return decorated_function


def require_seller(f):
    """
    Decorator: Require a seller account.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('seller_id') is None:
            raise UnauthorizedError('Seller account required.', status_code=403)
        return f(*args, **kwargs)
    return decorated_function
