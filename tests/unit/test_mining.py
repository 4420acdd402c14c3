"""Unit tests for the SATD alignment and resolution engine."""

from typing import List

import pytest

from satdminer.detector import BaseSATDDetector, KeywordSATDDetector
from satdminer.extraction import ExtractionResult
from satdminer.mining import BaseCommitDiff, mine_comment_changes
from satdminer.mining.resolution import added_instance, removed_instance, replaced_instance
from satdminer.models import Comment, Resolution, SATDInstance


def make_comment(text, line, method="run", cls="app.Foo"):
    return Comment(text=text, start_line=line, end_line=line, containing_class=cls, containing_method=method)


class StubDiff(BaseCommitDiff):
    """Diff that touches exactly the (path, line) pairs it is given."""

    def __init__(self, touched_old=(), touched_new=(), detector=None):
        self.touched_old = set(touched_old)
        self.touched_new = set(touched_new)
        self.detector = detector or KeywordSATDDetector()

    def instances_for_old_file(self, file_path, comment, replacements=None) -> List[SATDInstance]:
        if (file_path, comment.start_line) not in self.touched_old:
            return []
        if replacements is not None:
            for candidate in replacements(file_path):
                if candidate.same_scope(comment) and (file_path, candidate.start_line) in self.touched_new:
                    return [replaced_instance(file_path, comment, file_path, candidate, self.detector)]
        return [removed_instance(file_path, comment)]

    def instances_for_new_file(self, file_path, comment) -> List[SATDInstance]:
        if (file_path, comment.start_line) not in self.touched_new:
            return []
        return [added_instance(file_path, comment)]


class FailingDetector(BaseSATDDetector):
    """Detector whose classifier is unavailable."""

    def is_satd(self, comment: str) -> bool:
        raise RuntimeError("classifier crashed")


@pytest.fixture
def detector():
    return KeywordSATDDetector()


def accounted(outcome, old_result, new_result, direct_parent):
    """Count every comment in exactly one bucket of the outcome."""
    old_total = sum(len(c) for path, c in old_result.comments.items() if path not in outcome.errored_files)
    new_total = sum(len(c) for path, c in new_result.comments.items() if path not in outcome.errored_files)
    with_old = sum(1 for i in outcome.instances if i.old is not None)
    with_new = sum(1 for i in outcome.instances if i.new is not None)
    unchanged = outcome.unchanged_count if direct_parent else 0
    return old_total + new_total, with_old + with_new + 2 * unchanged + len(outcome.unresolved)


class TestDirectParentMode:
    """Tests for adjacent-commit comparisons."""

    def test_added_comment(self, detector):
        """Test a comment added by an adjacent commit."""
        new_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO fix race", 5)]})
        diff = StubDiff(touched_new=[("Foo.java", 5)])

        outcome = mine_comment_changes(ExtractionResult(), new_result, diff, detector, direct_parent=True)

        assert len(outcome.instances) == 1
        instance = outcome.instances[0]
        assert instance.resolution == Resolution.ADDED
        assert instance.old is None
        assert instance.new.comment.text == "TODO fix race"
        assert instance.new.comment.containing_method == "run"

    def test_removed_comment(self, detector):
        """Test a comment removed by an adjacent commit."""
        old_result = ExtractionResult(comments={"Foo.java": [make_comment("FIXME leak", 7)]})
        diff = StubDiff(touched_old=[("Foo.java", 7)])

        outcome = mine_comment_changes(old_result, ExtractionResult(), diff, detector, direct_parent=True)

        assert [i.resolution for i in outcome.instances] == [Resolution.REMOVED]
        assert outcome.instances[0].new is None

    def test_moved_comment_is_not_reported(self, detector):
        """Test that a moved comment with the same text is not reported."""
        old_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO fix", 5)]})
        new_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO fix", 12, method="stop")]})
        diff = StubDiff(touched_old=[("Foo.java", 5)], touched_new=[("Foo.java", 12)])

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent=True)

        assert outcome.instances == []
        assert outcome.unchanged_count == 1

    def test_edit_in_other_method_is_removed_and_added(self, detector):
        """Test that an edit moved to another method is a removal plus an addition."""
        old_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO: optimize", 10)]})
        new_result = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO: optimize later", 30, method="stop")]}
        )
        diff = StubDiff(touched_old=[("Foo.java", 10)], touched_new=[("Foo.java", 30)])

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent=True)

        assert [i.resolution for i in outcome.instances] == [Resolution.REMOVED, Resolution.ADDED]

    def test_no_location_matching_between_adjacent_commits(self, detector):
        """Test that adjacent commits skip location alignment."""
        old_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO: optimize", 10)]})
        new_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO: optimize later", 10)]})

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), detector, direct_parent=True)

        assert outcome.instances == []
        assert [side.comment.text for side in outcome.unresolved] == ["TODO: optimize", "TODO: optimize later"]

    def test_replacement_in_same_hunk_is_changed(self, detector):
        """Test that a replacement in the same hunk is CHANGED."""
        old_comment = make_comment("TODO use a map", 5)
        new_comment = make_comment("TODO use a sorted map", 5)
        old_result = ExtractionResult(comments={"Foo.java": [old_comment]})
        new_result = ExtractionResult(comments={"Foo.java": [new_comment]})
        diff = StubDiff(touched_old=[("Foo.java", 5)], touched_new=[("Foo.java", 5)])

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent=True)

        assert len(outcome.instances) == 1
        instance = outcome.instances[0]
        assert instance.resolution == Resolution.CHANGED
        assert instance.old.comment == old_comment
        assert instance.new.comment == new_comment

    def test_replacement_claimed_once(self, detector):
        """Test that one new comment replaces at most one old comment."""
        old_result = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO one", 5), make_comment("TODO two", 6)]}
        )
        new_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO merged", 5)]})
        diff = StubDiff(touched_old=[("Foo.java", 5), ("Foo.java", 6)], touched_new=[("Foo.java", 5)])

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent=True)

        assert [i.resolution for i in outcome.instances] == [Resolution.CHANGED, Resolution.REMOVED]


class TestReleaseMode:
    """Tests for non-adjacent comparisons."""

    def test_unchanged_file_reports_stay(self, detector):
        """Test that release comparisons report unchanged SATD as STAY."""
        comment = make_comment("FIXME leak", 4, method="bar")
        old_result = ExtractionResult(comments={"Foo.java": [comment]})
        new_result = ExtractionResult(comments={"Foo.java": [comment]})

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), detector, direct_parent=False)

        assert len(outcome.instances) == 1
        assert outcome.instances[0].resolution == Resolution.STAY
        assert outcome.instances[0].old.comment == comment
        assert outcome.instances[0].new.comment == comment

    def test_edited_comment_same_method_is_changed(self, detector):
        """Test that an edit in the same method is CHANGED."""
        old_result = ExtractionResult(comments={"Baz.java": [make_comment("TODO: optimize", 10, "process")]})
        new_result = ExtractionResult(
            comments={"Baz.java": [make_comment("TODO: optimize with cache", 10, "process")]}
        )

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), detector, direct_parent=False)

        assert [i.resolution for i in outcome.instances] == [Resolution.CHANGED]

    def test_counterpart_no_longer_satd_is_removed(self, detector):
        """Test that a counterpart that is no longer SATD is REMOVED."""
        old_result = ExtractionResult(comments={"Baz.java": [make_comment("TODO: optimize", 10, "process")]})
        new_result = ExtractionResult(
            comments={"Baz.java": [make_comment("optimized with a cache", 10, "process")]}
        )

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), detector, direct_parent=False)

        assert len(outcome.instances) == 1
        assert outcome.instances[0].resolution == Resolution.REMOVED
        assert outcome.instances[0].new is not None

    def test_classifier_failure_counts_as_removed(self):
        """Test that a classifier failure counts as REMOVED."""
        comment = make_comment("TODO: optimize", 10)
        old_result = ExtractionResult(comments={"Baz.java": [comment]})
        new_result = ExtractionResult(comments={"Baz.java": [comment]})

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), FailingDetector(), direct_parent=False)

        assert [i.resolution for i in outcome.instances] == [Resolution.REMOVED]

    def test_duplicates_get_distinct_ids(self, detector):
        """Test that duplicate comments get distinct instance ids."""
        old_result = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO dup", 3, "a"), make_comment("TODO dup", 8, "b")]}
        )
        new_result = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO dup", 4, "a"), make_comment("TODO dup", 9, "b")]}
        )

        outcome = mine_comment_changes(old_result, new_result, StubDiff(), detector, direct_parent=False)

        assert [i.duplication_id for i in outcome.instances] == [0, 1]
        assert [i.new.comment.containing_method for i in outcome.instances] == ["a", "b"]
        assert len({i.instance_id for i in outcome.instances}) == 2

    def test_unmatched_untouched_comment_is_unresolved(self, detector):
        """Test that an unmatched comment outside the diff is unresolved."""
        old_result = ExtractionResult(comments={"Foo.java": [make_comment("TODO gone", 3)]})

        outcome = mine_comment_changes(old_result, ExtractionResult(), StubDiff(), detector, direct_parent=False)

        assert outcome.instances == []
        assert len(outcome.unresolved) == 1
        assert outcome.unresolved[0].comment.text == "TODO gone"


class TestFailureIsolation:
    """Tests for per-file parse failures."""

    def test_failed_file_does_not_affect_others(self, detector):
        """Test that a failing file leaves other files' outcomes unchanged."""
        old_result = ExtractionResult(
            comments={"A.java": [make_comment("TODO a", 3)], "B.java": [make_comment("TODO b", 3)]}
        )
        clean_new = ExtractionResult(
            comments={"A.java": [make_comment("TODO a", 3)], "B.java": [make_comment("TODO b", 3)]}
        )
        broken_new = ExtractionResult(
            comments={"B.java": [make_comment("TODO b", 3)]},
            errored_files=["A.java"],
        )

        clean = mine_comment_changes(old_result, clean_new, StubDiff(), detector, direct_parent=False)
        broken = mine_comment_changes(
            old_result,
            broken_new,
            StubDiff(touched_old=[("A.java", 3)]),
            detector,
            direct_parent=False,
        )

        clean_b = [i for i in clean.instances if i.old.file_path == "B.java"]
        assert broken.instances == clean_b
        assert broken.errored_files == ["A.java"]
        assert all(i.old.file_path != "A.java" for i in broken.instances)


class TestInvariants:
    """Conservation and determinism of the engine."""

    def _scenario(self):
        old_result = ExtractionResult(
            comments={
                "Foo.java": [
                    make_comment("TODO dup", 3, "a"),
                    make_comment("TODO dup", 8, "b"),
                    make_comment("TODO: optimize", 12, "c"),
                    make_comment("FIXME removed", 20, "d"),
                ],
                "Bar.java": [make_comment("HACK keep", 2, cls="app.Bar")],
            }
        )
        new_result = ExtractionResult(
            comments={
                "Foo.java": [
                    make_comment("TODO dup", 3, "a"),
                    make_comment("TODO: optimize more", 12, "c"),
                    make_comment("TODO brand new", 25, "e"),
                ],
                "Bar.java": [make_comment("HACK keep", 2, cls="app.Bar")],
            }
        )
        diff = StubDiff(
            touched_old=[("Foo.java", 8), ("Foo.java", 20)],
            touched_new=[("Foo.java", 25)],
        )
        return old_result, new_result, diff

    @pytest.mark.parametrize("direct_parent", [True, False])
    def test_every_comment_accounted_once(self, detector, direct_parent):
        """Test that every comment lands in exactly one outcome."""
        old_result, new_result, diff = self._scenario()

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent)

        expected, actual = accounted(outcome, old_result, new_result, direct_parent)
        assert expected == actual

    def test_release_outcomes(self, detector):
        """Test the outcomes of a mixed release comparison."""
        old_result, new_result, diff = self._scenario()

        outcome = mine_comment_changes(old_result, new_result, diff, detector, direct_parent=False)

        assert [i.resolution for i in outcome.instances] == [
            Resolution.STAY,
            Resolution.CHANGED,
            Resolution.STAY,
            Resolution.REMOVED,
            Resolution.REMOVED,
            Resolution.ADDED,
        ]

    def test_repeatable(self, detector):
        """Test that mining the same input twice gives the same result."""
        first = mine_comment_changes(*self._scenario(), detector, direct_parent=False)
        second = mine_comment_changes(*self._scenario(), detector, direct_parent=False)

        assert first.instances == second.instances
        assert [i.instance_id for i in first.instances] == [i.instance_id for i in second.instances]


class TestIdentityAcrossPairs:
    """Instance ids stay stable when one comparison feeds the next."""

    def _revisions(self):
        first = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO x", 3, "a"), make_comment("TODO x", 8, "b")]}
        )
        second = ExtractionResult(
            comments={"Foo.java": [make_comment("TODO x", 3, "a"), make_comment("TODO y", 8, "b")]}
        )
        return first, second

    def test_changed_then_stay_share_id(self, detector):
        """Test that a release CHANGED instance keeps its id when it stays next release."""
        first, second = self._revisions()

        earlier = mine_comment_changes(first, second, StubDiff(), detector, direct_parent=False)
        later = mine_comment_changes(second, second, StubDiff(), detector, direct_parent=False)

        changed = [i for i in earlier.instances if i.resolution == Resolution.CHANGED]
        assert len(changed) == 1
        assert changed[0].old.comment.text == "TODO x"
        assert changed[0].duplication_id == 0
        stay = next(i for i in later.instances if i.new.comment.text == "TODO y")
        assert stay.resolution == Resolution.STAY
        assert stay.instance_id == changed[0].instance_id

    def test_replaced_then_removed_share_id(self, detector):
        """Test that a replacement's id matches the removal of the replacing comment."""
        first, second = self._revisions()
        third = ExtractionResult(comments={"Foo.java": [make_comment("TODO x", 3, "a")]})

        earlier = mine_comment_changes(
            first,
            second,
            StubDiff(touched_old=[("Foo.java", 8)], touched_new=[("Foo.java", 8)]),
            detector,
            direct_parent=True,
        )
        later = mine_comment_changes(
            second, third, StubDiff(touched_old=[("Foo.java", 8)]), detector, direct_parent=True
        )

        assert [i.resolution for i in earlier.instances] == [Resolution.CHANGED]
        assert earlier.instances[0].duplication_id == 0
        assert [i.resolution for i in later.instances] == [Resolution.REMOVED]
        assert later.instances[0].instance_id == earlier.instances[0].instance_id
