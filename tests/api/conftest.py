import pytest
from fastapi.testclient import TestClient

from tenantkit.application.scoped_cache import TenantCacheFactory
from tenantkit.infrastructure.memory.cache_store import InMemoryCacheStore
from tenantkit.main import create_app
from tenantkit.presentation.dependencies import (
    get_cache_factory,
    get_email_channel,
    get_otp_repository,
    get_sms_channel,
)
from tests.fakes import FakeChannel, FakeOtpRepository


class Deps:
    """Handles on the fakes wired into the app under test."""

    def __init__(self):
        self.repo = FakeOtpRepository()
        self.sms = FakeChannel("sms")
        self.email = None
        self.cache_factory = TenantCacheFactory(InMemoryCacheStore(), default_ttl=3600)


@pytest.fixture()
def app_and_deps():
    app = create_app()
    deps = Deps()

    app.dependency_overrides[get_otp_repository] = lambda: deps.repo
    app.dependency_overrides[get_sms_channel] = lambda: deps.sms
    app.dependency_overrides[get_email_channel] = lambda: deps.email
    app.dependency_overrides[get_cache_factory] = lambda: deps.cache_factory

    try:
        yield app, deps
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def deps(app_and_deps):
    _, d = app_and_deps
    return d


@pytest.fixture()
def client(app_and_deps):
    # lifespan is not entered: no pool, redis or http client is opened
    app, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)
