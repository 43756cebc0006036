"""Tests for ContentStateMachine and ContentItemStore."""

import pytest

from pagesmith.content.lifecycle import ContentStateMachine, check_transition
from pagesmith.content.models import TRANSITIONS, ContentStatus
from pagesmith.db import Database
from pagesmith.errors import NotFoundError, OwnershipError, StateConflictError, ValidationError


@pytest.fixture
def machine(db: Database) -> ContentStateMachine:
    return ContentStateMachine(db)


def _generated(machine: ContentStateMachine, db: Database, html: str = "<html>page</html>") -> str:
    item = machine.create("owner-1", title="Intro", slug="intro")
    machine.mark_ready(item.id)
    with db.begin() as conn:
        machine.mark_generated(conn, item.id, html)
    return item.id


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(ContentStatus)

    def test_publish_only_from_generated(self):
        sources = {status for status, targets in TRANSITIONS.items() if ContentStatus.PUBLISHED in targets}
        assert sources == {ContentStatus.GENERATED}


class TestCreate:
    def test_new_item_is_planned(self, machine):
        item = machine.create("owner-1", "proj-1", title="Intro", slug="intro")
        assert item.status == ContentStatus.PLANNED
        assert item.assembled_html is None
        stored = machine.items.require(item.id)
        assert stored.scope_id == "proj-1"
        assert stored.created_at.tzinfo is not None

    def test_list_filters_by_status(self, machine):
        first = machine.create("owner-1", title="A", slug="a")
        machine.create("owner-1", title="B", slug="b")
        machine.create("owner-2", title="C", slug="c")
        machine.mark_ready(first.id)

        assert len(machine.items.list("owner-1")) == 2
        assert [i.id for i in machine.items.list("owner-1", ContentStatus.READY)] == [first.id]

    def test_get_unknown(self, machine):
        assert machine.items.get("nope") is None
        with pytest.raises(NotFoundError):
            machine.items.require("nope")


class TestMarkReady:
    def test_planned_to_ready(self, machine):
        item = machine.create("owner-1", title="Intro", slug="intro")
        assert machine.mark_ready(item.id).status == ContentStatus.READY

    def test_missing_metadata_listed(self, machine):
        item = machine.create("owner-1")
        with pytest.raises(ValidationError) as exc_info:
            machine.mark_ready(item.id)
        assert exc_info.value.items == ["title", "slug"]
        assert machine.items.require(item.id).status == ContentStatus.PLANNED

    def test_blank_slug_counts_as_missing(self, machine):
        item = machine.create("owner-1", title="Intro", slug="   ")
        with pytest.raises(ValidationError) as exc_info:
            machine.mark_ready(item.id)
        assert exc_info.value.items == ["slug"]

    def test_twice_conflicts(self, machine):
        item = machine.create("owner-1", title="Intro", slug="intro")
        machine.mark_ready(item.id)
        with pytest.raises(StateConflictError) as exc_info:
            machine.mark_ready(item.id)
        assert (exc_info.value.current, exc_info.value.requested) == ("ready", "ready")

    def test_unknown_item(self, machine):
        with pytest.raises(NotFoundError):
            machine.mark_ready("missing")


class TestMarkGenerated:
    def test_stores_page(self, machine, db):
        item_id = _generated(machine, db)
        item = machine.items.require(item_id)
        assert item.status == ContentStatus.GENERATED
        assert item.assembled_html == "<html>page</html>"

    def test_planned_cannot_be_generated(self, machine, db):
        item = machine.create("owner-1", title="Intro", slug="intro")
        with pytest.raises(StateConflictError):
            with db.begin() as conn:
                machine.mark_generated(conn, item.id, "<html></html>")
        assert machine.items.require(item.id).assembled_html is None

    def test_published_cannot_be_regenerated(self, machine, db):
        item_id = _generated(machine, db)
        with db.begin() as conn:
            machine.mark_published(conn, item_id, "acme.test", "", "intro")
        with pytest.raises(StateConflictError) as exc_info:
            with db.begin() as conn:
                machine.mark_generated(conn, item_id, "<html>new</html>")
        assert exc_info.value.current == "published"
        assert machine.items.require(item_id).assembled_html == "<html>page</html>"


class TestPublishAndUnpublish:
    def test_publish_sets_address(self, machine, db):
        item_id = _generated(machine, db)
        with db.begin() as conn:
            item = machine.mark_published(conn, item_id, "acme.test", "/docs", "intro")
        assert item.is_published
        address = (item.published_domain, item.published_path, item.published_slug)
        assert address == ("acme.test", "/docs", "intro")
        assert item.published_at is not None

    def test_unpublish_keeps_page_and_clears_address(self, machine, db):
        item_id = _generated(machine, db)
        with db.begin() as conn:
            machine.mark_published(conn, item_id, "acme.test", "/docs", "intro")

        item = machine.unpublish(item_id, "owner-1")
        assert item.status == ContentStatus.GENERATED
        assert item.assembled_html == "<html>page</html>"
        assert item.slug == "intro"
        assert item.published_domain is None
        assert item.published_at is None

    def test_unpublish_requires_owner(self, machine, db):
        item_id = _generated(machine, db)
        with db.begin() as conn:
            machine.mark_published(conn, item_id, "acme.test", "", "intro")
        with pytest.raises(OwnershipError):
            machine.unpublish(item_id, "owner-2")
        assert machine.items.require(item_id).is_published

    def test_unpublish_when_not_published(self, machine, db):
        item_id = _generated(machine, db)
        with pytest.raises(StateConflictError) as exc_info:
            machine.unpublish(item_id, "owner-1")
        assert exc_info.value.current == "generated"

    def test_check_transition_message(self, machine):
        item = machine.create("owner-1", title="Intro", slug="intro")
        with pytest.raises(StateConflictError, match="current status is 'planned'"):
            check_transition(item, ContentStatus.PUBLISHED)
