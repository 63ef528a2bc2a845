"""Tests for calendar metadata storage."""

import pytest

from py_calstore import ConflictError, InvalidPropertyError, NotFoundError, UnsupportedPropertyError
from py_calstore.caldav import CalendarStore, PropertyMap, normalize_color
from py_calstore.caldav.properties import (
    CALENDAR_COLOR,
    CALENDAR_DESCRIPTION,
    CALENDAR_ORDER,
    CALENDAR_TIMEZONE,
    DISPLAYNAME,
    NS_APPLE_ICAL,
    SCHEDULE_CALENDAR_TRANSP,
    SUPPORTED_CALENDAR_COMPONENT_SET,
    ScheduleCalendarTransp,
    SupportedComponentSet,
    clark,
)


@pytest.fixture
def store(database, config):
    return CalendarStore(database, config=config)


def test_create_with_defaults(store):
    """Test that a calendar created without properties gets the defaults."""
    calendar_id = store.create("alice", "personal")

    calendar = store.get(calendar_id)

    assert calendar.uri == "personal"
    assert calendar.owner == "alice"
    assert calendar.properties[DISPLAYNAME] == "unnamed"
    assert calendar.components == ["VEVENT", "VTODO"]
    assert calendar.properties[CALENDAR_ORDER] == 0
    assert calendar.properties[CALENDAR_COLOR] == ""
    assert calendar.properties[CALENDAR_TIMEZONE] == ""
    assert calendar.ctag == "0"
    assert calendar.transparent is False


def test_create_with_properties(store):
    """Test that supplied properties are stored."""
    calendar_id = store.create(
        "alice",
        "work",
        {
            DISPLAYNAME: "Work",
            CALENDAR_DESCRIPTION: "Office hours",
            CALENDAR_ORDER: "2",
            CALENDAR_COLOR: "#00FF00",
            SUPPORTED_CALENDAR_COMPONENT_SET: SupportedComponentSet(("VTODO",)),
            SCHEDULE_CALENDAR_TRANSP: ScheduleCalendarTransp("transparent"),
        },
    )

    calendar = store.get(calendar_id)

    assert calendar.properties[DISPLAYNAME] == "Work"
    assert calendar.properties[CALENDAR_DESCRIPTION] == "Office hours"
    assert calendar.properties[CALENDAR_ORDER] == 2
    assert calendar.properties[CALENDAR_COLOR] == "#00FF00"
    assert calendar.components == ["VTODO"]
    assert calendar.transparent is True


def test_create_truncates_rgba_color(store):
    """Test that an 8-digit RGBA color is stored as 6-digit RGB."""
    calendar_id = store.create("alice", "work", {CALENDAR_COLOR: "#FF000080"})

    assert store.get(calendar_id).properties[CALENDAR_COLOR] == "#FF0000"


def test_create_keeps_rgb_color(store):
    """Test that a 6-digit color is stored unchanged."""
    calendar_id = store.create("alice", "work", {CALENDAR_COLOR: "#12ab34"})

    assert store.get(calendar_id).properties[CALENDAR_COLOR] == "#12ab34"


def test_normalize_color():
    """Test color normalization rules."""
    assert normalize_color("#FF000080") == "#FF0000"
    assert normalize_color("FF000080") == "FF0000"
    assert normalize_color("#FF0000") == "#FF0000"
    assert normalize_color("red") == "red"


def test_create_rejects_malformed_component_set(store):
    """Test that the component set must be a SupportedComponentSet."""
    with pytest.raises(InvalidPropertyError, match="SupportedComponentSet"):
        store.create("alice", "work", {SUPPORTED_CALENDAR_COMPONENT_SET: "VEVENT"})

    assert store.list_for_principal("alice") == []


def test_create_rejects_unknown_component(store):
    """Test that unknown component types are rejected."""
    with pytest.raises(InvalidPropertyError, match="VBOGUS"):
        store.create("alice", "work", {SUPPORTED_CALENDAR_COMPONENT_SET: SupportedComponentSet(("VBOGUS",))})


def test_create_rejects_malformed_transp(store):
    """Test that schedule-calendar-transp must be a ScheduleCalendarTransp."""
    with pytest.raises(InvalidPropertyError):
        store.create("alice", "work", {SCHEDULE_CALENDAR_TRANSP: "transparent"})


def test_create_duplicate_uri(store):
    """Test that a principal cannot have two calendars with the same URI."""
    store.create("alice", "work")

    with pytest.raises(ConflictError):
        store.create("alice", "work")

    # Another principal may use the same URI
    store.create("bob", "work")


def test_get_missing(store):
    """Test that a missing calendar raises NotFoundError."""
    with pytest.raises(NotFoundError):
        store.get(42)


def test_list_for_principal_disambiguates_shared_uri(store):
    """Test that shared calendars are listed with the owner suffixed to their URI."""
    bob_work = store.create("bob", "work", {DISPLAYNAME: "Bob's work"})
    store.create("alice", "work", {DISPLAYNAME: "Alice's work"})
    store.share(bob_work, "alice")

    alice_uris = sorted(c.uri for c in store.list_for_principal("alice"))
    bob_uris = [c.uri for c in store.list_for_principal("bob")]

    assert alice_uris == ["work", "work_shared_by_bob"]
    assert bob_uris == ["work"]


def test_list_for_principal_principal_uri(store):
    """Test that listed calendars carry the viewer's principal URI."""
    bob_work = store.create("bob", "work")
    store.share(bob_work, "alice")

    (calendar,) = store.list_for_principal("alice")

    assert calendar.principal_uri == "principals/alice"
    assert calendar.owner == "bob"
    assert calendar.shared


def test_list_excludes_unshared(store):
    """Test that other principals' calendars are not listed without a share."""
    store.create("bob", "work")

    assert store.list_for_principal("alice") == []


def test_find_by_uri(store):
    """Test resolving own and shared calendar URIs."""
    bob_work = store.create("bob", "work")
    alice_home = store.create("alice", "home")
    store.share(bob_work, "alice")

    assert store.find_by_uri("alice", "home").id == alice_home
    assert store.find_by_uri("alice", "work_shared_by_bob").id == bob_work
    assert store.find_by_uri("bob", "work").id == bob_work

    with pytest.raises(NotFoundError):
        store.find_by_uri("carol", "work_shared_by_bob")
    with pytest.raises(NotFoundError):
        store.find_by_uri("alice", "work")


def test_update_applies_all_mutations(store):
    """Test a successful update."""
    calendar_id = store.create("alice", "work")

    result = store.update(
        calendar_id,
        {
            DISPLAYNAME: "Renamed",
            CALENDAR_COLOR: "#0000FFFF",
            SCHEDULE_CALENDAR_TRANSP: ScheduleCalendarTransp("transparent"),
        },
    )

    assert result.success
    assert result.by_status() == {200: [DISPLAYNAME, CALENDAR_COLOR, SCHEDULE_CALENDAR_TRANSP]}

    calendar = store.get(calendar_id)
    assert calendar.properties[DISPLAYNAME] == "Renamed"
    assert calendar.properties[CALENDAR_COLOR] == "#0000FF"
    assert calendar.transparent is True
    assert calendar.ctag == "1"


def test_update_with_unsupported_property_changes_nothing(store):
    """Test that one unsupported property makes the whole update fail."""
    calendar_id = store.create("alice", "work", {DISPLAYNAME: "Original"})
    before = store.get(calendar_id)

    result = store.update(calendar_id, {"{DAV:}unsupported-prop": "x", DISPLAYNAME: "Changed"})

    assert not result.success
    assert result.statuses == {"{DAV:}unsupported-prop": 403, DISPLAYNAME: 424}
    assert isinstance(result.errors["{DAV:}unsupported-prop"], UnsupportedPropertyError)
    assert store.get(calendar_id) == before


def test_update_with_invalid_value_changes_nothing(store):
    """Test that an invalid value rejects the whole update."""
    calendar_id = store.create("alice", "work")

    result = store.update(calendar_id, {CALENDAR_ORDER: "first", DISPLAYNAME: "Changed"})

    assert result.by_status() == {403: [CALENDAR_ORDER], 424: [DISPLAYNAME]}
    assert isinstance(result.errors[CALENDAR_ORDER], InvalidPropertyError)
    assert store.get(calendar_id).properties[DISPLAYNAME] == "unnamed"
    assert store.get(calendar_id).ctag == "0"


def test_update_removes_property(store):
    """Test that a None value removes a property."""
    calendar_id = store.create("alice", "work", {CALENDAR_DESCRIPTION: "Old", CALENDAR_ORDER: 5})

    result = store.update(calendar_id, {CALENDAR_DESCRIPTION: None, CALENDAR_ORDER: None})

    assert result.success
    calendar = store.get(calendar_id)
    assert calendar.properties[CALENDAR_DESCRIPTION] == ""
    assert calendar.properties[CALENDAR_ORDER] == 0


def test_update_missing_calendar(store):
    """Test that updating a missing calendar raises NotFoundError."""
    with pytest.raises(NotFoundError):
        store.update(42, {DISPLAYNAME: "x"})


def test_extended_property_map(database, config):
    """Test that a registered property is stored without schema changes."""
    refreshrate = clark(NS_APPLE_ICAL, "refreshrate")
    property_map = PropertyMap()
    property_map.register(refreshrate, "refreshrate")
    store = CalendarStore(database, property_map, config)

    calendar_id = store.create("alice", "feed", {refreshrate: "PT1H"})
    assert store.get(calendar_id).properties[refreshrate] == "PT1H"

    assert store.update(calendar_id, {refreshrate: "PT2H"}).success
    assert store.get(calendar_id).properties[refreshrate] == "PT2H"

    assert store.update(calendar_id, {refreshrate: None}).success
    assert store.get(calendar_id).properties[refreshrate] == ""


def test_extra_properties_from_config(database, config):
    """Test that configured extra properties extend the map."""
    refreshrate = clark(NS_APPLE_ICAL, "refreshrate")
    config.extra_properties = {refreshrate: "refreshrate"}

    store = CalendarStore(database, config=config)

    assert refreshrate in store.property_map


def test_delete_is_idempotent(store):
    """Test that deleting twice succeeds."""
    calendar_id = store.create("alice", "work")

    store.delete(calendar_id)
    store.delete(calendar_id)

    with pytest.raises(NotFoundError):
        store.get(calendar_id)


def test_unshare(store):
    """Test withdrawing a share grant."""
    calendar_id = store.create("bob", "work")
    store.share(calendar_id, "alice")

    assert store.unshare(calendar_id, "alice")
    assert not store.unshare(calendar_id, "alice")
    assert store.list_for_principal("alice") == []


def test_share_missing_calendar(store):
    """Test that sharing a missing calendar raises NotFoundError."""
    with pytest.raises(NotFoundError):
        store.share(42, "alice")
