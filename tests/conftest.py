import pytest
from django.core.cache import cache

from skillswap import listings
from skillswap.models import Profile


@pytest.fixture(autouse=True)
def _clear_ratelimit_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(django_user_model):
    def _make(username, display_name=""):
        user = django_user_model.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="pass-1234",
        )
        if display_name:
            Profile.objects.create(user=user, display_name=display_name)
        return user

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner", display_name="Olivia Owner")


@pytest.fixture
def alice(make_user):
    return make_user("alice", display_name="Alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def make_listing(owner):
    def _make(user=None, **overrides):
        data = {
            "kind": "offer",
            "title": "Guitar lessons",
            "description": "Beginner friendly",
            "category": "Music",
            "availability": "Weekends",
            "location": "Campus",
            "is_paid": False,
        }
        data.update(overrides)
        return listings.create_listing(user or owner, data)

    return _make


@pytest.fixture
def listing(make_listing):
    return make_listing()


@pytest.fixture
def application_payload():
    return {
        "message": "I can help with this.",
        "availability": "Weekday evenings",
        "contact_email": "helper@example.com",
        "preferred_contact": "platform",
    }


@pytest.fixture
def api_client(client):
    """Django test client with a helper for logging in as a user."""

    def _as(user):
        client.force_login(user)
        return client

    return _as
