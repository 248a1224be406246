import pytest

from tenantkit.application.otp_manager import OtpManager
from tenantkit.application.otp_store import OtpStore
from tenantkit.application.scoped_cache import TenantCacheFactory
from tenantkit.domain.entities import TenantIdentity
from tenantkit.infrastructure.memory.cache_store import InMemoryCacheStore
from tests.fakes import FakeChannel, FakeClock, FakeOtpRepository


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def repo():
    return FakeOtpRepository()


@pytest.fixture()
def store(repo, clock):
    return OtpStore(repo, clock=clock)


@pytest.fixture()
def sms():
    return FakeChannel("sms")


@pytest.fixture()
def manager(store, sms, clock):
    return OtpManager(store, sms, code_length=6, ttl_seconds=300, clock=clock)


@pytest.fixture()
def cache_factory():
    return TenantCacheFactory(InMemoryCacheStore(), default_ttl=3600)


@pytest.fixture()
def acme():
    return TenantIdentity(id="acme")


@pytest.fixture()
def globex():
    return TenantIdentity(id=42)


@pytest.fixture()
def patch_code(monkeypatch):
    """
    Make the numeric code deterministic.
    Tests needing a sequence re-monkeypatch with their own generator.
    """
    from tenantkit.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_numeric_code", lambda length=6: "123456")
    yield
