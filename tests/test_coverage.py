"""Tests for the coverage aggregator and report."""

import pytest

from sceneautotest.coverage import CoverageAggregator, CoverageReport
from sceneautotest.errors import CoverageInvariantError
from sceneautotest.script_lines import parse_scene


def test_record_visit_counts_every_call() -> None:
    aggregator = CoverageAggregator(3)

    aggregator.record_visit(1)
    aggregator.record_visit(1)
    aggregator.record_visit(0)

    assert aggregator.count(0) == 1
    assert aggregator.count(1) == 2
    assert aggregator.count(2) == 0
    assert len(aggregator) == 3


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_out_of_range_visits_are_invariant_violations(index: int) -> None:
    aggregator = CoverageAggregator(3)

    with pytest.raises(CoverageInvariantError):
        aggregator.record_visit(index)


def test_negative_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        CoverageAggregator(-1)


def test_finalize_skips_blank_lines_and_end_marker() -> None:
    script = parse_scene("first\n\nthird\nfourth")
    aggregator = CoverageAggregator(len(script))
    aggregator.record_visit(0)
    aggregator.record_visit(3)

    report = aggregator.finalize(script, paths_explored=1, steps=2)

    assert report.coverage == (1, 0, 0, 1, 0)
    assert report.unreachable == (3,)
    assert report.uncovered_indices == (2,)
    assert report.paths_explored == 1
    assert report.steps == 2
    assert report.complete


def test_finalize_sorts_and_deduplicates_scene_exits() -> None:
    script = parse_scene("only")
    aggregator = CoverageAggregator(len(script))
    aggregator.record_visit(0)

    report = aggregator.finalize(script, scene_exits=("b", "a", "b"))

    assert report.scene_exits == ("a", "b")


def test_finalize_rejects_mismatched_script() -> None:
    script = parse_scene("one\ntwo")
    aggregator = CoverageAggregator(2)

    with pytest.raises(CoverageInvariantError):
        aggregator.finalize(script)


def test_report_helpers() -> None:
    report = CoverageReport(coverage=(1, 0, 2, 0), unreachable=(2,))

    assert report.covered_line_count == 2
    assert not report.fully_covered
    assert report.as_pair() == ([1, 0, 2, 0], [2])
