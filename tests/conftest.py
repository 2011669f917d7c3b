import pytest
from fastapi.testclient import TestClient

from app.api.v1.route import limiter
from app.main import app
from app.model.chat.message import FarmLocation
from app.model.user.user_profile import FarmDetails, UserProfile
from app.service.chat.generator import ResponseGenerator
from app.service.identity.identity import IdentityProvider
from app.service.services import ChatServices, get_services
from app.service.store.memory import InMemoryMessageStore

WHEAT_ANSWER = "Give the first irrigation about 21 days after sowing, at crown root initiation."


class StubIdentity(IdentityProvider):
    def __init__(self, users):
        self._users = users

    def resolve(self, token):
        return self._users.get(token)


class RecordingComplete:
    """Stands in for the remote completion call and keeps every prompt it saw."""

    def __init__(self, reply=WHEAT_ANSWER):
        self.reply = reply
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def farmer():
    return UserProfile(
        id="farmer-1",
        name="Gurpreet",
        location=FarmLocation(state="Punjab", district="Ludhiana", lat=30.9, lng=75.85),
        farm_details=FarmDetails(total_acres=4),
    )


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def complete():
    return RecordingComplete()


@pytest.fixture
def generator(complete):
    return ResponseGenerator(complete=complete, model="test-model", timeout_seconds=2)


@pytest.fixture
def services(store, generator, farmer):
    return ChatServices(store, generator, StubIdentity({"farmer-1": farmer}))


#scope : function < class < module < package < session
@pytest.fixture(scope="function")
def client(services):
    limiter.reset()
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
