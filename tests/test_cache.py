from lumina.cache import TTLCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire():
    clock = Clock()
    cache = TTLCache(clock=clock)
    cache.set("categories", [1, 2], ttl=60)
    clock.now = 59
    assert cache.get("categories") == [1, 2]
    clock.now = 61
    assert cache.get("categories") is None
    assert len(cache) == 0


def test_delete_prefix():
    cache = TTLCache()
    cache.set("products-all", [])
    cache.set("products-3", [])
    cache.set("categories", [])
    assert cache.delete_prefix("products") == 2
    assert cache.get("categories") == []
    assert cache.get("products-3") is None


def test_get_or_set_loads_once():
    cache = TTLCache()
    calls = []

    def load():
        calls.append(1)
        return {"delivery_charge": 60}

    assert cache.get_or_set("site-settings", load, 300) == {"delivery_charge": 60}
    assert cache.get_or_set("site-settings", load, 300) == {"delivery_charge": 60}
    assert len(calls) == 1
