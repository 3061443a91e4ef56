"""
Test configuration and fixtures for chat tests.

This module provides:
- Named user fixtures (alice, bob, carol, outsider)
- A group owned by alice with bob and carol as members
- API client helpers for authenticated requests

Usage:
    def test_example(group, alice_client):
        response = alice_client.get(f'/api/v1/messages/group/{group.id}/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.tests.factories import GroupFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(name="Alice", email="alice@example.com")


@pytest.fixture
def bob(db):
    return UserFactory(name="Bob", email="bob@example.com")


@pytest.fixture
def carol(db):
    return UserFactory(name="Carol", email="carol@example.com")


@pytest.fixture
def outsider(db):
    """A user who is in no test thread."""
    return UserFactory(name="Mallory", email="mallory@example.com")


# =============================================================================
# Group Fixtures
# =============================================================================


@pytest.fixture
def group(alice, bob, carol):
    """Group owned by alice, with bob and carol as members."""
    return GroupFactory(name="Team", owner=alice, members=[bob, carol])


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client for public endpoints."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(authenticated_client_factory, some_user):
            client = authenticated_client_factory(some_user)
            response = client.get('/api/v1/conversations/')
    """

    def _make_client(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _make_client


@pytest.fixture
def alice_client(authenticated_client_factory, alice):
    return authenticated_client_factory(alice)


@pytest.fixture
def bob_client(authenticated_client_factory, bob):
    return authenticated_client_factory(bob)


@pytest.fixture
def outsider_client(authenticated_client_factory, outsider):
    return authenticated_client_factory(outsider)
