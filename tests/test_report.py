"""
Test cases for verdicts, aggregation and report rendering.
"""

import threading

import pytest

from commitgate.fileset import FileSetMode
from commitgate.report import Aggregator, HookResult, Outcome, RunReport, Verdict, decide_verdict, render_report


def result(hook_id, outcome, **kwargs):
    return HookResult(hook_id=hook_id, name=hook_id, repo="r", outcome=outcome, **kwargs)


class TestVerdict:
    @pytest.mark.parametrize(
        "outcomes, verdict",
        [
            ([], Verdict.ALLOW),
            ([Outcome.PASSED, Outcome.SKIPPED], Verdict.ALLOW),
            ([Outcome.SKIPPED, Outcome.SKIPPED], Verdict.ALLOW),
            ([Outcome.PASSED, Outcome.FAILED], Verdict.BLOCK),
            ([Outcome.MODIFIED, Outcome.PASSED], Verdict.BLOCK),
            ([Outcome.SKIPPED, Outcome.MODIFIED, Outcome.FAILED], Verdict.BLOCK),
        ],
    )
    def test_block_iff_failed_or_modified(self, outcomes, verdict):
        results = [result(f"h{i}", o) for i, o in enumerate(outcomes)]
        assert decide_verdict(results) is verdict

    def test_aborted_overrides(self):
        assert decide_verdict([result("h", Outcome.PASSED)], aborted=True) is Verdict.ABORTED
        assert Verdict.ABORTED.blocks
        assert Verdict.BLOCK.blocks
        assert not Verdict.ALLOW.blocks


class TestAggregator:
    def test_results_are_ordered_by_index(self):
        aggregator = Aggregator(expected=3)
        aggregator.add(2, result("c", Outcome.PASSED))
        aggregator.add(0, result("a", Outcome.PASSED))
        aggregator.add(1, result("b", Outcome.SKIPPED))

        report = aggregator.finalize(FileSetMode.ALL_FILES, 5)
        assert [r.hook_id for r in report.results] == ["a", "b", "c"]
        assert report.verdict is Verdict.ALLOW
        assert report.file_count == 5

    def test_each_slot_is_filled_once(self):
        aggregator = Aggregator(expected=1)
        aggregator.add(0, result("a", Outcome.PASSED))
        with pytest.raises(ValueError):
            aggregator.add(0, result("a", Outcome.FAILED))
        with pytest.raises(IndexError):
            aggregator.add(1, result("b", Outcome.PASSED))

    def test_incomplete_report_is_an_error(self):
        aggregator = Aggregator(expected=2)
        aggregator.add(0, result("a", Outcome.PASSED))
        with pytest.raises(RuntimeError):
            aggregator.finalize(FileSetMode.ALL_FILES, 0)

    def test_aborted_report_may_be_partial(self):
        aggregator = Aggregator(expected=2)
        aggregator.add(0, result("a", Outcome.PASSED))
        report = aggregator.finalize(FileSetMode.CHANGED_ONLY, 1, aborted=True)
        assert report.verdict is Verdict.ABORTED
        assert len(report.results) == 1

    def test_concurrent_adds(self):
        aggregator = Aggregator(expected=50)
        threads = [
            threading.Thread(target=aggregator.add, args=(i, result(f"h{i}", Outcome.PASSED))) for i in range(50)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        report = aggregator.finalize(FileSetMode.ALL_FILES, 0)
        assert [r.hook_id for r in report.results] == [f"h{i}" for i in range(50)]


class TestRender:
    def make_report(self, *results, verdict=None):
        return RunReport(
            mode=FileSetMode.ALL_FILES,
            file_count=2,
            results=tuple(results),
            verdict=verdict or decide_verdict(results),
        )

    def test_one_line_per_hook(self):
        report = self.make_report(result("black", Outcome.PASSED), result("isort", Outcome.SKIPPED))
        lines = render_report(report, width=40).splitlines()

        assert lines[0].startswith("black.")
        assert lines[0].endswith("Passed")
        assert len(lines[0]) == 40
        assert lines[1].endswith("(no files to check)Skipped")
        assert len(lines) == 2

    def test_failure_details(self):
        report = self.make_report(result("flake8", Outcome.FAILED, returncode=1, output="a.py:1:1: F401\n"))
        text = render_report(report)

        assert "- hook id: flake8" in text
        assert "- exit code: 1" in text
        assert "F401" in text

    def test_modified_files_and_guidance(self):
        report = self.make_report(result("black", Outcome.MODIFIED, modified_files=("a.py",), returncode=1))
        text = render_report(report)

        assert "black" in text.splitlines()[0] and text.splitlines()[0].endswith("Failed")
        assert "- files were modified by this hook" in text
        assert "  a.py" in text
        assert "stage them" in text

    def test_passed_output_only_when_verbose(self):
        report = self.make_report(result("black", Outcome.PASSED, output="All done!\n"))

        assert "All done!" not in render_report(report)
        assert "All done!" in render_report(report, verbose=True)

    def test_aborted(self):
        report = self.make_report(result("black", Outcome.PASSED), verdict=Verdict.ABORTED)
        assert "Interrupted" in render_report(report)
