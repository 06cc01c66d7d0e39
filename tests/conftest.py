"""
Pytest fixtures and configuration for MediaTrack tests
"""
import os
import sys
import tempfile
import pytest
from unittest.mock import MagicMock

# Config (settings.yaml, secret key) goes to a throwaway directory
os.environ['MEDIATRACK_CONFIG_DIR'] = tempfile.mkdtemp(prefix='mediatrack-tests-')

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'app'))


@pytest.fixture
def app():
    """Application bound to an in-memory database"""
    from app import create_app
    from db import db
    from providers import reset_provider_adapters

    application = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret-key',
    })

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()

    reset_provider_adapters()


@pytest.fixture
def app_ctx(app):
    """Pushed app context for tests that call services directly"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def _detached(app, factory):
    """
    Run factory in its own app context and return the loaded row detached
    from the session.
    """
    from db import db

    with app.app_context():
        obj = factory()
        db.session.refresh(obj)
        db.session.expunge(obj)
    return obj


@pytest.fixture
def user(app):
    from auth import create_or_update_user
    return _detached(app, lambda: create_or_update_user('alice', 'alice-password', admin_access=False))


@pytest.fixture
def other_user(app):
    from auth import create_or_update_user
    return _detached(app, lambda: create_or_update_user('bob', 'bob-password', admin_access=False))


@pytest.fixture
def admin(app):
    from auth import create_or_update_user
    return _detached(app, lambda: create_or_update_user('admin', 'admin-password', admin_access=True))


def _bearer(app, user):
    from auth import create_api_token
    token = _detached(app, lambda: create_api_token(user.id, name='tests'))
    return {'Authorization': f'Bearer {token.token}'}


@pytest.fixture
def auth_headers(app, user):
    return _bearer(app, user)


@pytest.fixture
def other_auth_headers(app, other_user):
    return _bearer(app, other_user)


@pytest.fixture
def admin_headers(app, admin):
    return _bearer(app, admin)


@pytest.fixture
def fake_adapter():
    """
    Provider adapter double: raw payloads are already essential data and
    the external id is raw["id"].
    """
    from providers.base import ProviderAdapter

    adapter = MagicMock(spec=ProviderAdapter)
    adapter.to_essential.side_effect = lambda raw, media_kind: dict(raw)
    adapter.external_id.side_effect = lambda raw: str(raw['id'])
    return adapter


@pytest.fixture
def anime_record(app):
    """Finished anime with 24 episodes"""
    from services import cache_service
    return _detached(app, lambda: cache_service.upsert('jikan', '5114', 'anime', {
        'title': 'Fullmetal Alchemist: Brotherhood',
        'episodes': 24,
        'status': 'finished',
        'genres': [{'id': 1, 'name': 'Action'}],
    })[0])


@pytest.fixture
def manual_book(app):
    from services import cache_service
    return _detached(app, lambda: cache_service.upsert('manual', None, 'book', {
        'title': 'Notebook of a Friend',
        'pageCount': 120,
        'authors': ['A. Friend'],
    })[0])
