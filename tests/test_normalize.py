from __future__ import annotations

import unittest

from kor_proof.core.models import Correction
from kor_proof.core.normalize import is_meaningful_single_char, prepare_corrections


class PrepareCorrectionsTests(unittest.TestCase):
    def test_same_original_is_merged(self):
        out = prepare_corrections(
            [
                Correction("되", ("돼",), "맞춤법"),
                Correction("되", ("됨", "돼"), "다른 설명"),
            ]
        )
        self.assertEqual(out, [Correction("되", ("돼", "됨"), "맞춤법")])

    def test_unusable_suggestions_are_removed(self):
        out = prepare_corrections([Correction("먹었다", ("먹었다 ", "", "먹었다", "먹\ufffd다", "먹었어", "먹었어"), "")])
        self.assertEqual(out[0].corrected, ("먹었어",))

    def test_correction_without_suggestions_is_dropped(self):
        out = prepare_corrections([Correction("가나", ("가나",), ""), Correction("다라", ("다 라",), "")])
        self.assertEqual([c.original for c in out], ["다라"])

    def test_order_of_first_appearance(self):
        out = prepare_corrections(
            [Correction("나", ("너",), ""), Correction("가", ("거",), ""), Correction("나", ("노",), "")]
        )
        self.assertEqual([(c.original, c.corrected) for c in out], [("나", ("너", "노")), ("가", ("거",))])


class SingleCharFilterTests(unittest.TestCase):
    def test_rules(self):
        self.assertTrue(is_meaningful_single_char("안", "않"))
        self.assertTrue(is_meaningful_single_char("a", "아"))
        self.assertTrue(is_meaningful_single_char("?", "요"))
        self.assertTrue(is_meaningful_single_char("는", "는데"))
        self.assertFalse(is_meaningful_single_char("는", "늘"))

    def test_filter_is_opt_in(self):
        corrections = [Correction("안", ("않", "x"), ""), Correction("는", ("늘",), "")]

        unfiltered = prepare_corrections(corrections)
        self.assertEqual(len(unfiltered), 2)

        filtered = prepare_corrections(corrections, filter_single_char_errors=True)
        self.assertEqual(filtered, [Correction("안", ("않",), "")])

    def test_longer_originals_are_not_filtered(self):
        out = prepare_corrections([Correction("안녕", ("x",), "")], filter_single_char_errors=True)
        self.assertEqual(out[0].corrected, ("x",))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
