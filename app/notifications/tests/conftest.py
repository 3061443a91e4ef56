"""
Test configuration and fixtures for notification tests.

This module provides:
- A sender with two group peers, each with a push token
- A mock push client recording send() calls
- A throwaway Firebase service account (real RSA key) for FCM tests

Usage:
    def test_example(group_message, push_client):
        MessageNotificationService.notify(group_message, client=push_client)
        assert push_client.send.call_count == 2
"""

import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from authentication.tests.factories import UserFactory
from chat.tests.factories import GroupFactory, GroupMessageFactory


# =============================================================================
# User / Thread Fixtures
# =============================================================================


@pytest.fixture
def sender(db):
    return UserFactory(name="Sam", push_token="ExponentPushToken[sender]")


@pytest.fixture
def peer_a(db):
    return UserFactory(name="Ann", push_token="ExponentPushToken[ann]")


@pytest.fixture
def peer_b(db):
    return UserFactory(name="Ben", push_token="fcm-token-ben")


@pytest.fixture
def group(sender, peer_a, peer_b):
    """Group {sender, peer_a, peer_b}, owned by the sender."""
    return GroupFactory(name="Crew", owner=sender, members=[peer_a, peer_b])


@pytest.fixture
def group_message(group, sender):
    return GroupMessageFactory(group=group, sender=sender, body="hello crew")


# =============================================================================
# Push Fixtures
# =============================================================================


@pytest.fixture
def push_client(mocker):
    """Stand-in for notifications.push.PushClient that accepts everything."""
    client = mocker.Mock()
    client.send.return_value = "expo"
    return client


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def service_account(tmp_path, settings, rsa_private_key):
    """
    Write a Firebase service-account file and point settings at it.

    Returns the account dict (with "public_key" added for verification).
    """
    private_pem = rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    account = {
        "type": "service_account",
        "project_id": "chat-test",
        "private_key_id": "key-1",
        "private_key": private_pem,
        "client_email": "push@chat-test.iam.gserviceaccount.com",
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps(account))

    settings.FIREBASE_PROJECT_ID = "chat-test"
    settings.FIREBASE_SERVICE_ACCOUNT_FILE = str(path)

    public_pem = rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return {**account, "public_key": public_pem}
