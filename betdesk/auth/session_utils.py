"""
Session utility functions.
Logout pops only the keys this app owns instead of calling session.clear().
"""

from flask import session

USER_KEY = "user_id"
ROLE_KEY = "role"


def log_in_user(user):
    """Store the authenticated user in a permanent session"""
    session.permanent = True
    session[USER_KEY] = user.id
    session[ROLE_KEY] = user.role


def log_out_user():
    session.pop(USER_KEY, None)
    session.pop(ROLE_KEY, None)


def current_user_id():
    return session.get(USER_KEY)


def is_logged_in() -> bool:
    return USER_KEY in session
