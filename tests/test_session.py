from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from kor_proof.core.config import SessionConfig
from kor_proof.core.models import AIAnalysisResult, Correction, DisplayClass, ResolutionKind
from kor_proof.core.session import CorrectionSession

SAMPLE = "나는 밥을 먹었다. 그는 집에 갔다."

# "집에" lands on page 0, "밥을" on page 1 (break after ". " at 791)
LONG_TEXT = "집에 " + "가" * 786 + ". " + "밥을" + "나" * 300


class SessionBasicsTests(unittest.TestCase):
    def setUp(self):
        self.corrections = [Correction("밥을", ("밥을 ",), "띄어쓰기"), Correction("갔다", ("갔습니다",), "문법")]
        self.session = CorrectionSession(SAMPLE, self.corrections)

    def test_pipeline(self):
        self.assertEqual([o.unique_id for o in self.session.representatives], ["0_0", "1_0"])
        self.assertEqual(self.session.paginator.total_pages, 1)
        self.assertEqual(self.session.error_count(), 2)
        self.assertEqual(self.session.display_class("0_0"), DisplayClass.ERROR)

    def test_walkthrough(self):
        self.assertEqual(self.session.advance("0_0"), ("밥을 ", ResolutionKind.CORRECTED))
        self.assertEqual(self.session.advance("0_0"), ("밥을", ResolutionKind.EXCEPTION_PROCESSED))
        self.session.set_user_edited("1_0", "갔어요")

        result = self.session.finish()
        self.assertEqual(result.final_text, "나는 밥을 먹었다. 그는 집에 갔어요.")
        self.assertEqual(result.exception_originals, ["밥을"])

    def test_ignored_words(self):
        session = CorrectionSession(SAMPLE, self.corrections, ignored_words=["갔다"])
        self.assertEqual(session.classify("1_0"), ResolutionKind.IGNORED)
        self.assertEqual(session.error_count(), 1)

    def test_overlapping_corrections_leave_one_representative(self):
        corrections = [Correction("지킬", ("지 킬",), ""), Correction("지킬수", ("지킬 수",), "")]
        session = CorrectionSession("약속을 지킬수 있다", corrections)

        self.assertEqual(len(session.occurrences), 2)
        self.assertEqual([o.unique_id for o in session.representatives], ["0_0"])
        self.assertEqual(len(session.states), 1)

    def test_strategy_from_config(self):
        text = "ab ab"
        session = CorrectionSession(text, [Correction("ab", ("X",), "")], config=SessionConfig(reconstruct_strategy="offsets"))
        session.advance("0_0")

        self.assertEqual(session.reconstruct().final_text, "X ab")
        self.assertEqual(session.reconstruct("last_index").final_text, "ab X")


class MultiPageSessionTests(unittest.TestCase):
    def setUp(self):
        self.corrections = [Correction("집에", ("집에서",), "문법"), Correction("밥을", ("밥을 ",), "띄어쓰기")]
        self.session = CorrectionSession(LONG_TEXT, self.corrections)

    def test_page_assignment(self):
        self.assertEqual(self.session.paginator.total_pages, 2)
        self.assertEqual([pc.occurrence.unique_id for pc in self.session.page_corrections()], ["0_0"])
        self.assertEqual([pc.occurrence.unique_id for pc in self.session.page_corrections(1)], ["1_0"])

    def test_batch_advance_current_page(self):
        self.assertEqual(self.session.advance_all(), 1)
        self.assertEqual(self.session.classify("0_0"), ResolutionKind.CORRECTED)
        self.assertEqual(self.session.classify("1_0"), ResolutionKind.ERROR)
        self.assertEqual(self.session.error_count(current_page_only=True), 0)
        self.assertEqual(self.session.error_count(), 1)

        self.assertEqual(self.session.retreat_all(), 1)
        self.assertEqual(self.session.classify("0_0"), ResolutionKind.ERROR)

    def test_batch_advance_explicit_ids(self):
        self.session.advance_all(["0_0", "1_0"])
        self.assertEqual(self.session.error_count(), 0)

    def test_repaginate_from_viewport(self):
        self.assertEqual(self.session.repaginate(available_height=1000), 1)
        self.assertEqual(self.session.paginator.chars_per_page, 1800)
        self.assertEqual(len(self.session.page_corrections()), 2)


class AIResultsTests(unittest.TestCase):
    def setUp(self):
        self.corrections = [Correction("집에", ("집에서",), "문법"), Correction("밥을", ("밥을 ",), "띄어쓰기")]
        self.session = CorrectionSession(LONG_TEXT, self.corrections)

    def test_selections_are_applied(self):
        applied = self.session.apply_ai_results(
            [
                AIAnalysisResult(correction_index=5, selected_value="x"),
                AIAnalysisResult(correction_index=0, selected_value="집에서", confidence=90),
                AIAnalysisResult(correction_index=1, selected_value="밥을", is_exception_processed=True),
            ]
        )
        self.assertEqual(applied, 2)
        self.assertEqual(self.session.states.state("0_0").current_value, "집에서")
        self.assertEqual(self.session.classify("1_0"), ResolutionKind.EXCEPTION_PROCESSED)

    def test_original_kept_and_error(self):
        self.session.apply_ai_results([AIAnalysisResult(0, "집에", is_original_kept=True)])
        self.assertEqual(self.session.classify("0_0"), ResolutionKind.ORIGINAL_KEPT)

        self.session.apply_ai_results([AIAnalysisResult(0, "집에")])
        self.assertEqual(self.session.classify("0_0"), ResolutionKind.ERROR)

    def test_unknown_value_is_skipped(self):
        self.assertEqual(self.session.apply_ai_results([AIAnalysisResult(0, "없는값")]), 0)
        self.assertEqual(self.session.classify("0_0"), ResolutionKind.ERROR)


class SessionLogTests(unittest.TestCase):
    def test_finish_appends_jsonl(self):
        session = CorrectionSession(SAMPLE, [Correction("갔다", ("갔습니다",), "문법")])
        session.advance("0_0")

        with tempfile.TemporaryDirectory() as tmp:
            session.finish("offsets", log_dir=tmp)
            session.finish(log_dir=tmp)

            files = list(Path(tmp).glob("*.jsonl"))
            self.assertEqual(len(files), 1)
            rows = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]

        self.assertEqual(len(rows), 2)
        self.assertEqual([r["strategy"] for r in rows], ["offsets", "last_index"])
        self.assertEqual(rows[0]["resolution_counts"]["corrected"], 1)
        self.assertEqual(rows[0]["items"][0]["selected_value"], "갔습니다")
        self.assertEqual(rows[0]["items"][0]["page_index"], 0)

    def test_no_log_without_directory(self):
        session = CorrectionSession(SAMPLE, [])
        with tempfile.TemporaryDirectory() as tmp:
            session.finish()
            self.assertEqual(list(Path(tmp).iterdir()), [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
