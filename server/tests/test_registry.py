import pytest

from services.registry import (
    Hosting, InvalidInput, NotFound, RoleConflict, StreamConflict, Viewing,
)


def _all_viewer_ids(registry):
    ids = []
    for info in registry.list_streams():
        ids.extend(v.viewer_id for v in registry.get_viewer_list(info.stream_id))
    return ids


def _assert_invariants(registry):
    ids = _all_viewer_ids(registry)
    assert len(ids) == len(set(ids))
    for info in registry.list_streams():
        assert info.host_id not in {v.viewer_id for v in registry.get_viewer_list(info.stream_id)}
        assert registry.role_of(info.host_id) == Hosting(info.stream_id)


def test_create_then_list_has_single_entry(registry):
    outcome = registry.create_stream("h1", "  news  ", "  Evening News ")
    assert outcome.stream.stream_id == "news"
    assert outcome.stream.title == "Evening News"

    streams = registry.list_streams()
    assert [(s.stream_id, s.title, s.host_id) for s in streams] == [("news", "Evening News", "h1")]
    assert registry.role_of("h1") == Hosting("news")


@pytest.mark.parametrize("title", [None, "", "   "])
def test_blank_title_falls_back_to_stream_id(registry, title):
    outcome = registry.create_stream("h1", "host-a", title)
    assert outcome.stream.title == "host-a"


@pytest.mark.parametrize("stream_id", [None, "", "   \t"])
def test_create_with_blank_id_is_invalid_and_changes_nothing(registry, stream_id):
    with pytest.raises(InvalidInput) as exc:
        registry.create_stream("h1", stream_id)
    assert exc.value.code == "INVALID_INPUT"
    assert registry.list_streams() == []
    assert registry.role_of("h1") is None


def test_create_over_another_hosts_id_is_rejected(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")

    with pytest.raises(StreamConflict):
        registry.create_stream("h2", " room ")

    assert registry.get_stream("room").host_id == "h1"
    assert [v.viewer_id for v in registry.get_viewer_list("room")] == ["v1"]
    assert registry.role_of("h2") is None


def test_same_host_recreating_same_id_retitles_and_keeps_viewers(registry):
    registry.create_stream("h1", "room", "Old")
    registry.join_stream("v1", "room")

    outcome = registry.create_stream("h1", "room", "New")

    assert outcome.ended is None and outcome.departed is None
    assert registry.get_stream("room").title == "New"
    assert [v.viewer_id for v in registry.get_viewer_list("room")] == ["v1"]


def test_host_creating_second_stream_ends_the_first(registry):
    registry.create_stream("h1", "first")
    registry.join_stream("v1", "first")

    outcome = registry.create_stream("h1", "second")

    assert outcome.ended.stream_id == "first"
    assert outcome.ended.viewer_ids == ("v1",)
    assert [s.stream_id for s in registry.list_streams()] == ["second"]
    assert registry.role_of("v1") is None
    _assert_invariants(registry)


def test_viewer_creating_a_stream_leaves_what_it_watched(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")

    outcome = registry.create_stream("v1", "own")

    assert outcome.departed.stream_id == "room"
    assert outcome.departed.host_id == "h1"
    assert registry.get_viewer_list("room") == []
    assert registry.role_of("v1") == Hosting("own")
    _assert_invariants(registry)


def test_end_stream_returns_viewers_and_clears_roles(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")
    registry.join_stream("v2", "room")

    ended = registry.end_stream("h1")

    assert ended.stream_id == "room"
    assert set(ended.viewer_ids) == {"v1", "v2"}
    assert registry.list_streams() == []
    assert registry.role_of("h1") is None
    assert registry.role_of("v1") is None
    # a released viewer can now leave without effect
    assert registry.leave_stream("v1") is None


def test_end_stream_is_noop_when_not_hosting(registry):
    assert registry.end_stream("nobody") is None
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")
    assert registry.end_stream("v1") is None
    assert registry.get_stream("room") is not None


def test_join_records_metadata(registry):
    registry.create_stream("h1", "room")
    outcome = registry.join_stream(
        "v1", " room ", {"displayName": "Ada", "avatarUrl": "https://img/ada.png"})

    assert outcome.host_id == "h1"
    assert outcome.stream_id == "room"
    [viewer] = registry.get_viewer_list("room")
    assert viewer.to_dict() == {
        "viewerId": "v1", "displayName": "Ada", "avatarUrl": "https://img/ada.png",
    }
    assert isinstance(registry.role_of("v1"), Viewing)


def test_join_normalises_missing_and_odd_metadata(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room", {"displayName": "", "avatarUrl": None})
    registry.join_stream("v2", "room", "not-an-object")
    registry.join_stream("v3", "room", {"displayName": 42})
    registry.join_stream("v4", "room", {"displayName": 0, "avatarUrl": False})

    viewers = {v.viewer_id: v for v in registry.get_viewer_list("room")}
    assert viewers["v1"].display_name is None and viewers["v1"].avatar_url is None
    assert viewers["v2"].display_name is None
    assert viewers["v3"].display_name == "42"
    assert viewers["v4"].display_name is None and viewers["v4"].avatar_url is None


def test_join_unknown_stream_is_not_found_and_keeps_current_membership(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")

    with pytest.raises(NotFound):
        registry.join_stream("v1", "missing")

    assert [v.viewer_id for v in registry.get_viewer_list("room")] == ["v1"]
    assert registry.role_of("v1").stream_id == "room"


def test_join_with_blank_id_is_invalid(registry):
    with pytest.raises(InvalidInput):
        registry.join_stream("v1", "  ")


def test_host_cannot_join_a_stream(registry):
    registry.create_stream("h1", "mine")
    registry.create_stream("h2", "theirs")

    with pytest.raises(RoleConflict):
        registry.join_stream("h1", "mine")
    with pytest.raises(RoleConflict):
        registry.join_stream("h1", "theirs")
    _assert_invariants(registry)


def test_switching_streams_moves_viewer(registry):
    registry.create_stream("ha", "A")
    registry.create_stream("hb", "B")
    registry.join_stream("v1", "A")
    registry.join_stream("v2", "A")

    outcome = registry.join_stream("v1", "B")

    assert outcome.departed.stream_id == "A"
    assert outcome.departed.host_id == "ha"
    assert [v.viewer_id for v in registry.get_viewer_list("A")] == ["v2"]
    assert [v.viewer_id for v in registry.get_viewer_list("B")] == ["v1"]
    _assert_invariants(registry)


def test_rejoin_same_stream_updates_metadata_only(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room", {"displayName": "Old"})

    outcome = registry.join_stream("v1", "room", {"displayName": "New"})

    assert outcome.rejoined is True
    assert outcome.departed is None
    [viewer] = registry.get_viewer_list("room")
    assert viewer.display_name == "New"


def test_leave_twice_is_noop(registry):
    assert registry.leave_stream("v1") is None
    assert registry.leave_stream("v1") is None

    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")
    departed = registry.leave_stream("v1")
    assert departed.host_id == "h1"
    assert registry.leave_stream("v1") is None


def test_disconnect_host_and_viewer(registry):
    registry.create_stream("h1", "room")
    registry.join_stream("v1", "room")
    registry.join_stream("v2", "room")

    viewer_out = registry.disconnect("v2")
    assert viewer_out.ended is None
    assert viewer_out.departed.viewer_id == "v2"

    host_out = registry.disconnect("h1")
    assert host_out.departed is None
    assert host_out.ended.viewer_ids == ("v1",)
    assert registry.list_streams() == []

    idle = registry.disconnect("stranger")
    assert idle.ended is None and idle.departed is None


def test_viewer_list_of_missing_stream_is_empty(registry):
    assert registry.get_viewer_list("nope") == []


def test_invariants_hold_across_a_busy_sequence(registry):
    registry.create_stream("h1", "a")
    registry.create_stream("h2", "b")
    for viewer in ("v1", "v2", "v3"):
        registry.join_stream(viewer, "a")
    registry.join_stream("v2", "b")
    registry.join_stream("v3", "b")
    registry.join_stream("v3", "a")
    registry.leave_stream("v1")
    registry.create_stream("v2", "c")
    registry.join_stream("v1", "c")
    registry.disconnect("h2")
    _assert_invariants(registry)
    assert sorted(_all_viewer_ids(registry)) == ["v1", "v3"]
