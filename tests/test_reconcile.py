"""Tests for keyed list reconciliation."""

import pytest

from omnisearch.reconcile import KeyedList, reconcile, unique_keys
from omnisearch.session import ExtensionChip, ProjectEntry


def build(keys, selected=None):
    """Create project entries, marking ``selected`` if given."""
    return [ProjectEntry(key, selected=(key == selected)) for key in keys]


class TestReconcile:
    """Tests for the reconcile algorithm."""

    def test_removed_selection_falls_back_to_first(self):
        """Test [A,B,C] with B selected updated to [A,C,D]."""
        old = build(["A", "B", "C"], selected="B")
        a, b, c = old

        result = reconcile(old, ["A", "C", "D"], ProjectEntry)

        assert [e.key for e in result.elements] == ["A", "C", "D"]
        assert result.elements[0] is a
        assert result.elements[1] is c
        assert b.disposed
        assert result.disposed == [b]
        assert [e.key for e in result.created] == ["D"]
        assert a.selected
        assert not c.selected and not result.elements[2].selected

    def test_unchanged_list_is_untouched(self):
        """Test that [A] selected updated to [A] creates and destroys nothing."""
        old = build(["A"], selected="A")

        result = reconcile(old, ["A"], ProjectEntry)

        assert result.elements[0] is old[0]
        assert result.created == []
        assert result.disposed == []
        assert old[0].selected

    def test_selection_preserved_when_key_survives(self):
        """Test that the selected key stays selected after an insert."""
        old = build(["A", "B"], selected="B")

        result = reconcile(old, ["Z", "A", "B"], ProjectEntry)

        assert [e.key for e in result.elements] == ["Z", "A", "B"]
        assert result.elements[2] is old[1]
        assert old[1].selected
        assert [e.selected for e in result.elements] == [False, False, True]

    def test_insert_in_the_middle(self):
        """Test that new keys are placed before the next reused element."""
        old = build(["A", "C"])

        result = reconcile(old, ["A", "B", "C"], ProjectEntry)

        assert [e.key for e in result.elements] == ["A", "B", "C"]
        assert result.elements[0] is old[0]
        assert result.elements[2] is old[1]
        assert [e.key for e in result.created] == ["B"]

    def test_reordered_keys_dispose_skipped_elements(self):
        """Test that a moved key is recreated and its old element disposed."""
        old = build(["A", "B"])
        a, b = old

        result = reconcile(old, ["B", "A"], ProjectEntry)

        assert [e.key for e in result.elements] == ["B", "A"]
        assert result.elements[1] is a
        assert result.elements[0] is not b
        assert b.disposed
        assert not a.disposed
        assert len({e.key for e in result.elements}) == 2

    def test_empty_input_disposes_everything(self):
        """Test that an empty input leaves nothing selected."""
        old = build(["A", "B"], selected="A")

        result = reconcile(old, [], ProjectEntry)

        assert result.elements == []
        assert all(e.disposed for e in old)

    def test_empty_to_populated_selects_first(self):
        """Test that the first element is selected by default."""
        result = reconcile([], ["A", "B"], ProjectEntry)
        assert [e.selected for e in result.elements] == [True, False]

    def test_select_first_disabled(self):
        """Test that chips are left unselected without a prior selection."""
        result = reconcile([], ["go", "rs"], ExtensionChip, select_first=False)
        assert not any(e.selected for e in result.elements)

    def test_duplicate_keys_collapse(self):
        """Test that repeated input keys produce one element."""
        result = reconcile([], ["A", "B", "A"], ProjectEntry)
        assert [e.key for e in result.elements] == ["A", "B"]

    def test_at_most_one_selected(self):
        """Test that only the first of several selected elements survives."""
        old = [ProjectEntry("A", selected=True), ProjectEntry("B", selected=True)]

        result = reconcile(old, ["A", "B"], ProjectEntry)

        assert [e.selected for e in result.elements] == [True, False]


class TestUniqueKeys:
    """Tests for key deduplication."""

    def test_keeps_first_occurrence(self):
        assert unique_keys(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestKeyedList:
    """Tests for the KeyedList wrapper."""

    @pytest.fixture
    def projects(self):
        keyed = KeyedList(ProjectEntry)
        keyed.update(["/src/api", "/src/web"])
        return keyed

    def test_update_selects_first(self, projects):
        """Test that the first project is selected initially."""
        assert projects.selected().path == "/src/api"
        assert projects.keys() == ["/src/api", "/src/web"]

    def test_select(self, projects):
        """Test moving the selection."""
        entry = projects.select("/src/web")
        assert entry is projects.find("/src/web")
        assert [e.selected for e in projects] == [False, True]

    def test_select_unknown_key(self, projects):
        """Test that selecting a missing key changes nothing."""
        assert projects.select("/nowhere") is None
        assert projects.selected().path == "/src/api"

    def test_selection_survives_update(self, projects):
        """Test that a rebuild keeps the user's choice."""
        projects.select("/src/web")
        web = projects.find("/src/web")

        projects.update(["/src/lib", "/src/web"])

        assert projects.selected() is web
        assert projects.keys() == ["/src/lib", "/src/web"]

    def test_clear(self, projects):
        """Test that clear() disposes all elements."""
        entries = list(projects)
        projects.clear()
        assert len(projects) == 0
        assert all(e.disposed for e in entries)
