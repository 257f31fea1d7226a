"""
Session identity and route guards.

The identity of a request is read from the signed session cookie only; the
role stored at login is trusted until logout.
"""
from functools import wraps

from flask import abort, current_app, redirect, session, url_for
from flask_login import AnonymousUserMixin, LoginManager, UserMixin, current_user, login_user, logout_user

from ellarises.models import ROLE_MANAGER

login_manager = LoginManager()
login_manager.login_view = 'login'

SESSION_KEYS = ('username', 'role', 'participant_id', 'profile_picture_url')


def _is_manager(username, role):
    return role == ROLE_MANAGER or username in current_app.config['SUPER_ADMINS']


class SessionUser(UserMixin):
    """Request-scoped view of the logged-in account."""

    def __init__(self, user_id, username, role, participant_id=None, profile_picture_url=None):
        self.user_id = user_id
        self.username = username
        self.role = role
        self.participant_id = participant_id
        self.profile_picture_url = profile_picture_url

    def get_id(self):
        return str(self.user_id)

    @property
    def is_manager(self):
        return _is_manager(self.username, self.role)


class AnonymousViewer(AnonymousUserMixin):
    user_id = None
    username = None
    role = None
    participant_id = None
    profile_picture_url = None
    is_manager = False


login_manager.anonymous_user = AnonymousViewer


@login_manager.user_loader
def load_user(user_id):
    if 'username' not in session:
        return None
    return SessionUser(int(user_id), **{key: session.get(key) for key in SESSION_KEYS})


def start_session(user):
    """Populate the session for a freshly authenticated `user` row."""
    participant = user.participant
    session['username'] = user.username
    session['role'] = user.role
    session['participant_id'] = user.participant_id
    session['profile_picture_url'] = participant.profile_picture_url if participant else None
    login_user(SessionUser(user.user_id, **{key: session[key] for key in SESSION_KEYS}))


def end_session():
    logout_user()
    session.clear()


def refresh_profile_picture(url):
    session['profile_picture_url'] = url
    current_user.profile_picture_url = url


def login_required(func):
    """Pass the viewer to the view, or send anonymous callers to the login page."""
    @wraps(func)
    def decorated_view(*args, **kwargs):
        if not current_user.is_authenticated:
            return redirect(url_for('login'))
        return func(current_user._get_current_object(), *args, **kwargs)
    return decorated_view


def manager_required(func):
    """Pass the viewer to the view, or answer 403 when they are not a manager."""
    @wraps(func)
    def decorated_view(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_manager:
            abort(403)
        return func(current_user._get_current_object(), *args, **kwargs)
    return decorated_view
