"""Template catalog selection behaviour."""

from __future__ import annotations

import unittest

from billboard.models import TemplateRecord
from billboard.templates import TEMPLATES, describe_template, get_template, select_template


def _record(filename: str, person_count: int, mood: str = "", colors: str = "", description: str = "") -> TemplateRecord:
    return TemplateRecord(
        filename=filename,
        person_count=person_count,
        mood=mood,
        colors=colors,
        aspect_ratio="16:9",
        description=description,
    )


class SelectTemplateTest(unittest.TestCase):
    """Covers candidate narrowing, scoring and tie-breaking."""

    def test_never_empty_for_any_person_count(self) -> None:
        for person_count in range(1, 10):
            for mood in (None, "", "elegant", "zzzz qqqq"):
                self.assertIsNotNone(select_template(person_count, mood))

    def test_no_mood_returns_first_exact_match(self) -> None:
        first_single = next(t for t in TEMPLATES if t.person_count == 1)
        self.assertEqual(select_template(1).filename, first_single.filename)
        self.assertEqual(select_template(1, "   ").filename, first_single.filename)

    def test_short_tokens_are_ignored(self) -> None:
        # "to" and "an" are dropped, leaving no keywords
        self.assertEqual(select_template(1, "to an").filename, "001.jpg")

    def test_single_matching_candidate_wins_regardless_of_order(self) -> None:
        catalog = [
            _record("a.jpg", 1, "calm", "grey", "quiet office"),
            _record("b.jpg", 1, "calm", "grey", "stormy lighthouse"),
            _record("c.jpg", 1, "calm", "grey", "quiet library"),
        ]
        self.assertEqual(select_template(1, "lighthouse", catalog).filename, "b.jpg")

    def test_all_zero_scores_keep_catalog_order(self) -> None:
        catalog = [_record("first.jpg", 1, "calm"), _record("second.jpg", 1, "calm")]
        self.assertEqual(select_template(1, "volcano", catalog).filename, "first.jpg")

    def test_equal_scores_keep_catalog_order(self) -> None:
        catalog = [
            _record("first.jpg", 1, "luxury"),
            _record("second.jpg", 1, "luxury"),
        ]
        self.assertEqual(select_template(1, "luxury", catalog).filename, "first.jpg")

    def test_substring_matching_is_permissive(self) -> None:
        catalog = [
            _record("plain.jpg", 1, "calm", "white", "quiet room"),
            _record("bored.jpg", 1, "calm", "white", "a bored model"),
        ]
        self.assertEqual(select_template(1, "red", catalog).filename, "bored.jpg")

    def test_colors_field_is_scored(self) -> None:
        catalog = [
            _record("one.jpg", 1, "calm", "white", "room"),
            _record("two.jpg", 1, "calm", "teal", "room"),
        ]
        self.assertEqual(select_template(1, "teal", catalog).filename, "two.jpg")

    def test_falls_back_to_larger_templates(self) -> None:
        # No 3-person template exists; only the 4-person one has room
        self.assertEqual(select_template(3).filename, "003.webp")

    def test_falls_back_to_whole_catalog(self) -> None:
        self.assertEqual(select_template(9).filename, TEMPLATES[0].filename)

    def test_empty_catalog_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            select_template(1, "elegant", [])

    def test_analysis_mood_scenario(self) -> None:
        selected = select_template(1, "elegant luxury warm")
        self.assertEqual(selected.filename, "001.jpg")
        self.assertEqual(selected.mood, "luxury fashion")

    def test_dramatic_mood_prefers_athletic_template(self) -> None:
        self.assertEqual(select_template(1, "dramatic power").filename, "002.jpg")

    def test_two_person_fun_mood(self) -> None:
        self.assertEqual(select_template(2, "playful fun").filename, "006.jpg")


class CatalogLookupTest(unittest.TestCase):
    def test_get_template(self) -> None:
        self.assertEqual(get_template("005.jpg").person_count, 2)
        self.assertIsNone(get_template("missing.jpg"))

    def test_empty_catalog_is_not_replaced(self) -> None:
        self.assertIsNone(get_template("001.jpg", []))
        self.assertEqual(get_template("001.jpg", TEMPLATES[:1]).filename, "001.jpg")

    def test_describe_unknown_template_falls_back(self) -> None:
        self.assertEqual(describe_template("missing.jpg"), "Luxury billboard advertisement")

    def test_records_are_immutable(self) -> None:
        with self.assertRaises(Exception):
            TEMPLATES[0].mood = "changed"

    def test_wire_format_is_camel_case(self) -> None:
        dumped = TEMPLATES[0].model_dump(by_alias=True)
        self.assertEqual(dumped["personCount"], 1)
        self.assertEqual(dumped["aspectRatio"], "16:9")
