from flask import request
from flask_login import LoginManager, current_user
from werkzeug.security import generate_password_hash, check_password_hash
from functools import wraps
from sqlalchemy.exc import SQLAlchemyError
import secrets
import os
import logging

from exceptions import AuthenticationException, AuthorizationException
from repositories.apitoken_repository import ApiTokenRepository
from repositories.user_repository import UserRepository
from utils import now_utc

# Retrieve main logger
logger = logging.getLogger("main")

login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    """Load user for Flask-Login sessions"""
    return UserRepository.get_by_id(int(user_id))


@login_manager.request_loader
def load_user_from_request(request):
    """API clients authenticate with a Bearer token or HTTP Basic credentials"""
    user = check_api_token(request)
    if user is None and request.authorization:
        user = basic_auth(request)
    return user


@login_manager.unauthorized_handler
def unauthorized_json():
    logger.warning(f"Unauthorized request to {request.path}")
    raise AuthenticationException("Unauthorized")


def admin_required(f):
    @wraps(f)
    def decorated_view(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.has_admin_access():
            raise AuthorizationException("Admin access required")
        return f(*args, **kwargs)

    return decorated_view


def basic_auth(request):
    """Returns the user matching the Basic credentials, or None"""
    auth = request.authorization
    if auth is None or not auth.username:
        return None

    user = UserRepository.get_by_username(auth.username)
    if user is None:
        logger.warning(f'Unknown user "{auth.username}".')
        return None

    if not user.password or not check_password_hash(user.password, auth.password or ""):
        logger.warning(f'Incorrect password for user "{auth.username}".')
        return None

    return user


def check_api_token(request):
    """
    Validate Bearer token from Authorization header.
    Returns: the token's user or None
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    token_str = auth_header.split(" ", 1)[1].strip()
    token = ApiTokenRepository.get_by_token(token_str)
    if token is None:
        logger.warning("Invalid API token presented")
        return None

    try:
        ApiTokenRepository.touch(token, now_utc())
    except SQLAlchemyError as e:
        # Don't fail auth just because of timestamp update error
        logger.warning(f"Could not update token last use: {e}")

    return token.user


def create_api_token(user_id, name="default"):
    """Issue a new bearer token for a user"""
    token = ApiTokenRepository.create(user_id=user_id, token=secrets.token_hex(32), name=name)
    logger.info(f"Created API token '{name}' for user {user_id}")
    return token


def create_or_update_user(username, password, admin_access=False):
    """
    Create a new user or update an existing user with the given credentials and access rights.
    """
    hashed_pw = generate_password_hash(password, method="pbkdf2:sha256")
    user = UserRepository.get_by_username(username)
    if user:
        logger.info(f"Updating existing user {username}")
        return UserRepository.update(user.id, password=hashed_pw, admin_access=admin_access)

    logger.info(f"Creating new user {username}")
    return UserRepository.create(user=username, password=hashed_pw, admin_access=admin_access)


def init_user_from_environment(environment_name, admin=False):
    """
    allow to init some user from environment variable to init some users without using the UI
    """
    username = os.getenv(environment_name + "_NAME")
    password = os.getenv(environment_name + "_PASSWORD")
    if not (username and password):
        return

    if admin:
        logger.info("Initializing an admin user from environment variable...")
    else:
        logger.info("Initializing a regular user from environment variable...")
        if not UserRepository.admin_exists():
            logger.error(f"Error creating user {username}, first account created must be admin")
            return

    create_or_update_user(username, password, admin_access=admin)


def init_users(app):
    with app.app_context():
        # init users from ENV
        if os.environ.get("USER_ADMIN_NAME") is not None:
            init_user_from_environment(environment_name="USER_ADMIN", admin=True)
        if os.environ.get("USER_GUEST_NAME") is not None:
            init_user_from_environment(environment_name="USER_GUEST", admin=False)
