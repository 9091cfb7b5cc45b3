from nl_search.core.cache import TaggedCache


def test_value_is_computed_once():
    cache = TaggedCache()
    calls = []

    def compute():
        calls.append(1)
        return ("make", "model")

    assert cache.get_or_compute("fields:cars", compute) == ("make", "model")
    assert cache.get_or_compute("fields:cars", compute) == ("make", "model")
    assert len(calls) == 1


def test_none_is_a_cacheable_value():
    cache = TaggedCache()
    calls = []

    cache.get_or_compute("k", lambda: calls.append(1), tags=["t"])
    cache.get_or_compute("k", lambda: calls.append(1), tags=["t"])

    assert len(calls) == 1
    assert cache.invalidate("t") == 1


def test_invalidate_drops_only_tagged_entries():
    cache = TaggedCache()
    cache.get_or_compute("fields:cars", lambda: 1, tags=["collection:cars"])
    cache.get_or_compute("fields:bikes", lambda: 2, tags=["collection:bikes"])

    assert cache.invalidate("collection:cars") == 1
    assert "fields:cars" not in cache
    assert "fields:bikes" in cache
    assert cache.invalidate("collection:cars") == 0


def test_entry_under_several_tags():
    cache = TaggedCache()
    cache.get_or_compute("k", lambda: 1, tags=["a", "b"])

    assert cache.invalidate("a") == 1
    assert cache.invalidate("b") == 0
    assert len(cache) == 0


def test_failed_compute_is_not_cached():
    cache = TaggedCache()

    def fail():
        raise ConnectionError("down")

    try:
        cache.get_or_compute("k", fail)
    except ConnectionError:
        pass
    assert "k" not in cache
    assert cache.get_or_compute("k", lambda: 3) == 3


def test_clear():
    cache = TaggedCache()
    cache.get_or_compute("k", lambda: 1, tags=["t"])
    cache.clear()

    assert len(cache) == 0
    assert cache.invalidate("t") == 0
