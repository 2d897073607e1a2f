from __future__ import annotations

import unittest

from kor_proof.core.indexer import find_occurrences, iter_matches
from kor_proof.core.models import Correction
from kor_proof.core.overlap import build_groups, help_priority, pick_representative, resolve_overlaps

SAMPLE = "나는 밥을 먹었다. 그는 집에 갔다."


class IndexerTests(unittest.TestCase):
    def test_single_occurrence_position(self):
        corrections = [Correction("밥을", ("밥을 ",), "띄어쓰기")]
        occ = find_occurrences(SAMPLE, corrections)

        self.assertEqual(len(occ), 1)
        self.assertEqual(occ[0].absolute_position, 3)
        self.assertEqual(occ[0].length, 2)
        self.assertEqual(occ[0].unique_id, "0_0")

    def test_every_occurrence_is_found_and_verbatim(self):
        text = "가나 가나다 가나"
        corrections = [Correction("가나", ("가 나",), "")]
        occ = find_occurrences(text, corrections)

        self.assertEqual([o.absolute_position for o in occ], [0, 3, 7])
        self.assertEqual([o.unique_id for o in occ], ["0_0", "0_1", "0_2"])
        for o in occ:
            self.assertEqual(text[o.absolute_position:o.end], "가나")

    def test_overlapping_matches_are_counted(self):
        self.assertEqual(list(iter_matches("aaaa", "aa")), [0, 1, 2])

    def test_match_inside_longer_word_is_kept(self):
        occ = find_occurrences("먹었다가 왔다", [Correction("먹었다", ("먹었다가",), "")])
        self.assertEqual([o.absolute_position for o in occ], [0])

    def test_sorted_by_position_then_correction(self):
        corrections = [
            Correction("나", ("너",), ""),
            Correction("가나", ("가 나",), ""),
            Correction("가", ("거",), ""),
        ]
        occ = find_occurrences("가나", corrections)

        self.assertEqual(
            [(o.absolute_position, o.correction_ref) for o in occ],
            [(0, 1), (0, 2), (1, 0)],
        )

    def test_missing_and_degenerate_corrections_are_dropped(self):
        corrections = [
            Correction("없는말", ("없는 말",), ""),
            Correction("", ("x",), ""),
            Correction(SAMPLE + "끝", ("x",), ""),
        ]
        self.assertEqual(find_occurrences(SAMPLE, corrections), [])
        self.assertEqual(find_occurrences("", corrections), [])


class HelpPriorityTests(unittest.TestCase):
    def test_categories(self):
        self.assertEqual(help_priority("문법에 맞지 않는 표현입니다."), 3)
        self.assertEqual(help_priority("맞춤법 오류"), 2)
        self.assertEqual(help_priority("띄어쓰기 오류"), 1)
        self.assertEqual(help_priority("표준어 규정"), 0)
        self.assertEqual(help_priority(""), 0)

    def test_english_and_case(self):
        self.assertEqual(help_priority("Grammar"), 3)
        self.assertEqual(help_priority("SPELLING mistake"), 2)
        self.assertEqual(help_priority("spacing"), 1)


class OverlapTests(unittest.TestCase):
    TEXT = "지킬수 있다"

    def _resolve(self, corrections):
        occ = find_occurrences(self.TEXT, corrections)
        return occ, resolve_overlaps(occ, corrections)

    def test_same_start_forms_one_group(self):
        corrections = [Correction("지킬", ("지 킬",), ""), Correction("지킬수", ("지킬 수",), "")]
        occ = find_occurrences(self.TEXT, corrections)
        groups = build_groups(occ, corrections)

        self.assertEqual(len(groups), 1)
        self.assertEqual(len(groups[0].members), 2)
        self.assertEqual(len(groups[0].suppressed), 1)

    def test_more_suggestions_wins(self):
        corrections = [
            Correction("지킬", ("지 킬",), "문법"),
            Correction("지킬수", ("지킬 수", "지킬쑤"), "띄어쓰기"),
        ]
        _, reps = self._resolve(corrections)
        self.assertEqual([r.unique_id for r in reps], ["1_0"])

    def test_duplicate_suggestions_count_once(self):
        corrections = [
            Correction("지킬", ("지 킬", "지 킬", "지 킬"), "문법"),
            Correction("지킬수", ("지킬 수", "지킬쑤"), ""),
        ]
        _, reps = self._resolve(corrections)
        self.assertEqual(reps[0].correction_ref, 1)

    def test_help_priority_breaks_count_tie(self):
        corrections = [
            Correction("지킬", ("지 킬",), "띄어쓰기"),
            Correction("지킬수", ("지킬 수",), "문법 오류"),
        ]
        _, reps = self._resolve(corrections)
        self.assertEqual(reps[0].correction_ref, 1)

    def test_first_in_order_is_final_fallback(self):
        corrections = [
            Correction("지킬", ("지 킬",), "맞춤법"),
            Correction("지킬수", ("지킬 수",), "맞춤법"),
        ]
        occ, reps = self._resolve(corrections)
        self.assertEqual(reps[0].correction_ref, 0)
        self.assertIs(pick_representative(occ, corrections), occ[0])

    def test_partial_overlap_at_different_starts_stays_separate(self):
        corrections = [Correction("가나", ("가 나",), ""), Correction("나다", ("나 다",), "")]
        occ = find_occurrences("가나다", corrections)
        reps = resolve_overlaps(occ, corrections)

        self.assertEqual([r.absolute_position for r in reps], [0, 1])

    def test_grouping_matches_containment_for_shared_starts(self):
        corrections = [
            Correction("가", ("거",), ""),
            Correction("가나", ("가 나",), ""),
            Correction("가나다", ("가나 다",), ""),
            Correction("나", ("너",), ""),
        ]
        occ = find_occurrences("가나다 나", corrections)
        groups = build_groups(occ, corrections)
        group_of = {m.unique_id: i for i, g in enumerate(groups) for m in g.members}

        for a in occ:
            for b in occ:
                if a.absolute_position != b.absolute_position:
                    continue
                contained = a.text in b.text or b.text in a.text
                self.assertEqual(group_of[a.unique_id] == group_of[b.unique_id], contained)

    def test_empty_input(self):
        self.assertEqual(resolve_overlaps([], []), [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
