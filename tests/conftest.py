import pytest
from rest_framework.test import APIClient

from tests.factories import ClientFactory, UserFactory


@pytest.fixture
def user(db):
    return UserFactory(username="testuser")


@pytest.fixture
def client_record(user):
    return ClientFactory(user=user, name="Acme Studios", email="accounts@acme.example.com")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_api_client(api_client, user):
    api_client.force_authenticate(user=user)
    return api_client


class RecordingDispatcher:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def dispatch(self, notification):
        if notification.recipient in self.fail_for:
            raise ConnectionError(f"SMTP refused {notification.recipient}")
        self.sent.append(notification)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()
