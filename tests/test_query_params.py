import pytest

from wallsearch.search.query import (
    NavigationHistory,
    QueryParamStore,
    SearchQuery,
    SortBy,
    parse_query_string,
)


def test_empty_query_string_gives_defaults():
    assert parse_query_string("") == SearchQuery()
    assert parse_query_string(None) == SearchQuery()
    assert SearchQuery().to_query_string() == ""


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("page=abc", SearchQuery()),
        ("page=0", SearchQuery()),
        ("page=-3", SearchQuery()),
        ("sort=bogus", SearchQuery()),
        ("video=yes&premium=1", SearchQuery()),
        ("category=all&device=all", SearchQuery()),
        ("unknown=1&q=sky", SearchQuery(text="sky")),
        ("q=a&q=b", SearchQuery(text="a")),
    ],
)
def test_malformed_values_fall_back_to_defaults(raw, expected):
    assert parse_query_string(raw) == expected


def test_parse_accepts_full_url_and_fragment():
    query = parse_query_string("/search?q=space+cats&video=true&page=3#results")
    assert query.text == "space cats"
    assert query.video_only is True
    assert query.page == 3


def test_canonical_serialization_is_sorted_and_omits_defaults():
    query = SearchQuery(text="nature", sort_by=SortBy.POPULAR, include_premium=True, page=2)
    assert query.to_query_string() == "page=2&premium=true&q=nature&sort=popular"


def test_equivalent_urls_share_a_cache_key():
    a = parse_query_string("?sort=newest&q=nature&page=1")
    b = parse_query_string("q=nature")
    assert a == b
    assert a.cache_key == b.cache_key == "q=nature"


def test_url_round_trip_reconstructs_identical_query():
    store = QueryParamStore()
    store.set_param("q", "red sunset & sea")
    store.set_param("category", "nature")
    store.set_param("device", "mobile")
    store.set_param("res", "1080x1920")
    store.set_param("video", True)
    store.set_param("premium", "true")
    store.set_param("sort", "downloads")
    store.set_page(4)

    fresh = QueryParamStore(store.url)
    assert fresh.query == store.query
    assert fresh.url == store.url


def test_setting_default_sort_removes_key():
    store = QueryParamStore("q=nature&sort=popular")
    store.set_param("sort", "newest")
    assert "sort" not in store.query_string
    assert store.url == "/search?q=nature"


def test_filter_change_resets_page_but_page_change_does_not():
    store = QueryParamStore("q=nature&page=5")
    store.set_param("category", "space")
    assert store.query.page == 1
    assert "page" not in store.query_string

    store.set_page(3)
    assert store.query.page == 3
    assert store.query.category == "space"


@pytest.mark.parametrize("value", ["", "all", None])
def test_empty_filter_value_removes_key(value):
    store = QueryParamStore("category=space")
    store.set_param("category", value)
    assert store.query_string == ""


def test_boolean_false_removes_key():
    store = QueryParamStore("video=true&q=x")
    store.set_param("video", False)
    assert store.query_string == "q=x"


def test_unknown_key_is_rejected():
    store = QueryParamStore()
    with pytest.raises(KeyError):
        store.set_param("color", "blue")


def test_listeners_fire_only_on_real_changes():
    store = QueryParamStore("q=nature")
    seen = []
    unsubscribe = store.subscribe(seen.append)

    assert store.set_param("q", "nature") is False
    assert store.set_param("sort", "newest") is False
    assert seen == []

    assert store.set_param("q", "space") is True
    assert [q.text for q in seen] == ["space"]

    unsubscribe()
    store.set_param("q", "ocean")
    assert len(seen) == 1


def test_failing_listener_does_not_block_others():
    store = QueryParamStore()
    seen = []

    def boom(query):
        raise RuntimeError("listener broke")

    store.subscribe(boom)
    store.subscribe(seen.append)
    store.set_param("q", "x")
    assert len(seen) == 1


def test_replace_navigation_keeps_single_history_entry():
    store = QueryParamStore()
    store.set_param("q", "a")
    store.set_param("q", "b")
    assert len(store.history) == 1
    assert store.back() is False


def test_push_navigation_supports_back_and_forward():
    store = QueryParamStore()
    seen = []
    store.subscribe(seen.append)
    store.set_param("q", "a", push=True)
    store.set_param("q", "b", push=True)

    assert store.back() is True
    assert store.query.text == "a"
    assert store.back() is True
    assert store.query == SearchQuery()
    assert store.forward() is True
    assert store.query.text == "a"
    assert [q.text for q in seen] == ["a", "b", "a", "", "a"]


def test_push_drops_forward_entries():
    history = NavigationHistory("")
    history.push("q=a")
    history.push("q=b")
    history.back()
    history.push("q=c")
    assert not history.can_go_forward
    assert history.current == "q=c"
    assert len(history) == 3


def test_clear_all_and_suggestion_replace_state():
    store = QueryParamStore("q=x&category=space&page=2&sort=popular")
    store.apply_suggestion("minimal")
    assert store.query == SearchQuery(text="minimal")

    store.clear_all()
    assert store.url == "/search"


def test_request_payload_matches_endpoint_contract():
    query = SearchQuery(text="nature", device_type="mobile", video_only=True, page=2)
    assert query.to_request_payload(limit=24) == {
        "action": "search_wallpapers",
        "query": "nature",
        "filters": {"deviceType": "mobile", "showPremium": False, "videoOnly": True},
        "page": 2,
        "limit": 24,
        "sortBy": "newest",
    }


def test_has_active_filters_ignores_page():
    assert not SearchQuery(page=3).has_active_filters
    assert SearchQuery(sort_by=SortBy.POPULAR).has_active_filters
    assert SearchQuery(text="x").has_active_filters


def test_direct_construction_rejects_page_below_one():
    with pytest.raises(ValueError):
        SearchQuery(page=0)


def test_nature_scenario_url():
    store = QueryParamStore()
    store.set_param("q", "nature")
    assert store.url == "/search?q=nature"
