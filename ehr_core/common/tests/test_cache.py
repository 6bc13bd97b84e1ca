import pytest

from ehr_core.common.cache import DjangoKeyValueCache, InMemoryKeyValueCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_in_memory_cache_ttl():
    clock = Clock()
    cache = InMemoryKeyValueCache(clock=clock)

    cache.set("k", "v", ttl=10)
    assert cache.exists("k")
    assert cache.get("k") == "v"

    clock.now += 10
    assert not cache.exists("k")
    assert cache.get("k", "gone") == "gone"


def test_in_memory_cache_without_ttl_never_expires():
    clock = Clock()
    cache = InMemoryKeyValueCache(clock=clock)
    cache.set("k", 0)
    clock.now += 10**9
    # falsy values still count as present
    assert cache.exists("k")

    cache.delete("k")
    assert not cache.exists("k")


@pytest.mark.django_db
def test_django_cache_adapter_stores_falsy_values():
    cache = DjangoKeyValueCache("default", prefix="t")
    cache.set("flag", False, ttl=60)
    assert cache.exists("flag")
    assert cache.get("flag") is False
    assert not cache.exists("missing")
