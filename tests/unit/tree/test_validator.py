"""Unit tests for tree/validator.py: descendant closure and destination checks."""

import pytest

from drive_tree.errors import MoveRejected, RejectReason
from drive_tree.store.models import Folder
from drive_tree.tree.validator import (
    UNKNOWN_PARENT,
    EntityKind,
    ForbiddenSet,
    MoveCandidate,
    compute_forbidden_set,
    is_valid_destination,
    validate_move,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _folder(id: str, parent_id: str | None, name: str = "") -> Folder:
    return Folder(id=id, name=name or f"folder-{id}", parent_id=parent_id)


def _projects_tree() -> list[Folder]:
    """Work(8) > Projects(1) > Archive(2) > 2023(3), plus unrelated Other(9)."""
    return [
        _folder("8", None, "Work"),
        _folder("9", None, "Other"),
        _folder("1", "8", "Projects"),
        _folder("2", "1", "Archive"),
        _folder("3", "2", "2023"),
        _folder("4", "9", "Nested"),
    ]


# ---------------------------------------------------------------------------
# compute_forbidden_set tests
# ---------------------------------------------------------------------------


class TestComputeForbiddenSet:
    def test_projects_scenario_contains_subject_and_descendants(self) -> None:
        forbidden = compute_forbidden_set("1", _projects_tree())

        assert forbidden.ids == frozenset({"1", "2", "3"})

    def test_excludes_ancestors_and_unrelated_folders(self) -> None:
        forbidden = compute_forbidden_set("2", _projects_tree())

        assert forbidden.ids == frozenset({"2", "3"})
        for other in ("1", "8", "9", "4"):
            assert other not in forbidden

    def test_always_contains_subject_even_when_unknown(self) -> None:
        forbidden = compute_forbidden_set("missing", _projects_tree())

        assert forbidden.ids == frozenset({"missing"})
        assert forbidden.current_parent_id is UNKNOWN_PARENT

    def test_empty_folder_list(self) -> None:
        assert compute_forbidden_set("1", []).ids == frozenset({"1"})

    def test_terminates_on_two_node_cycle(self) -> None:
        folders = [_folder("A", "B"), _folder("B", "A")]

        forbidden = compute_forbidden_set("A", folders)

        assert forbidden.ids == frozenset({"A", "B"})

    def test_terminates_on_self_parented_folder(self) -> None:
        forbidden = compute_forbidden_set("A", [_folder("A", "A"), _folder("C", "A")])

        assert forbidden.ids == frozenset({"A", "C"})

    def test_deep_chain_does_not_recurse(self) -> None:
        depth = 5000
        folders = [_folder("0", None)] + [_folder(str(i), str(i - 1)) for i in range(1, depth)]

        forbidden = compute_forbidden_set("0", folders)

        assert len(forbidden) == depth

    def test_current_parent_looked_up_from_folders(self) -> None:
        assert compute_forbidden_set("1", _projects_tree()).current_parent_id == "8"

    def test_explicit_current_parent_wins(self) -> None:
        forbidden = compute_forbidden_set("1", _projects_tree(), current_parent_id=None)

        assert forbidden.current_parent_id is None


# ---------------------------------------------------------------------------
# is_valid_destination tests
# ---------------------------------------------------------------------------


class TestIsValidDestination:
    def test_projects_scenario(self) -> None:
        forbidden = compute_forbidden_set("1", _projects_tree())

        assert not is_valid_destination(forbidden, "1")
        assert not is_valid_destination(forbidden, "2")
        assert not is_valid_destination(forbidden, "3")
        assert is_valid_destination(forbidden, None)
        assert is_valid_destination(forbidden, "9")

    def test_current_parent_is_not_valid(self) -> None:
        forbidden = compute_forbidden_set("1", _projects_tree())

        assert not is_valid_destination(forbidden, "8")

    def test_unrelated_folder_rejected_when_it_is_current_parent(self) -> None:
        forbidden = compute_forbidden_set("1", _projects_tree(), current_parent_id="9")

        assert not is_valid_destination(forbidden, "9")
        assert is_valid_destination(forbidden, "8")

    def test_root_invalid_when_subject_already_at_root(self) -> None:
        forbidden = compute_forbidden_set("9", _projects_tree())

        assert not is_valid_destination(forbidden, None)
        assert is_valid_destination(forbidden, "8")

    @pytest.mark.parametrize("subject", ["1", "2", "3", "4", "8", "9"])
    def test_own_parent_never_valid(self, subject: str) -> None:
        folders = _projects_tree()
        parent = next(f.parent_id for f in folders if f.id == subject)

        forbidden = compute_forbidden_set(subject, folders)

        assert not is_valid_destination(forbidden, parent)

    def test_unknown_parent_skips_unchanged_rule(self) -> None:
        forbidden = ForbiddenSet(subject_id="x", ids=frozenset({"x"}))

        assert is_valid_destination(forbidden, None)
        assert is_valid_destination(forbidden, "y")


# ---------------------------------------------------------------------------
# validate_move tests
# ---------------------------------------------------------------------------


class TestValidateMove:
    def test_forbidden_destination_rejected(self) -> None:
        candidate = MoveCandidate(EntityKind.FOLDER, "1", "Projects", parent_id="8")
        forbidden = compute_forbidden_set("1", _projects_tree())

        with pytest.raises(MoveRejected) as exc_info:
            validate_move(candidate, "3", forbidden)

        assert exc_info.value.reason is RejectReason.FORBIDDEN
        assert exc_info.value.destination_id == "3"

    def test_unchanged_destination_rejected(self) -> None:
        candidate = MoveCandidate(EntityKind.FOLDER, "1", "Projects", parent_id="8")

        with pytest.raises(MoveRejected) as exc_info:
            validate_move(candidate, "8")

        assert exc_info.value.reason is RejectReason.UNCHANGED

    def test_folder_into_itself_rejected_without_forbidden_set(self) -> None:
        candidate = MoveCandidate(EntityKind.FOLDER, "1", "Projects", parent_id="8")

        with pytest.raises(MoveRejected) as exc_info:
            validate_move(candidate, "1")

        assert exc_info.value.reason is RejectReason.FORBIDDEN

    def test_file_may_move_anywhere_but_current_folder(self) -> None:
        candidate = MoveCandidate(EntityKind.FILE, "f1", "a.txt", parent_id="2")

        validate_move(candidate, "1")
        validate_move(candidate, None)
        with pytest.raises(MoveRejected):
            validate_move(candidate, "2")

    def test_valid_folder_move_passes(self) -> None:
        candidate = MoveCandidate(EntityKind.FOLDER, "1", "Projects", parent_id="8")
        forbidden = compute_forbidden_set("1", _projects_tree())

        validate_move(candidate, "9", forbidden)
        validate_move(candidate, None, forbidden)
