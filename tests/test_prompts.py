"""Prompt builder behaviour."""

from __future__ import annotations

import unittest

from billboard import prompts


class MoodModifierTest(unittest.TestCase):
    def test_missing_mood_uses_gentle_default(self) -> None:
        self.assertEqual(prompts.mood_modifier(None), prompts.NO_MOOD_MODIFIER)
        self.assertEqual(prompts.mood_modifier(""), prompts.NO_MOOD_MODIFIER)

    def test_unmatched_mood_uses_cinematic_default(self) -> None:
        self.assertEqual(prompts.mood_modifier("serene"), prompts.DEFAULT_MOOD_MODIFIER)

    def test_match_is_case_insensitive_substring(self) -> None:
        self.assertIn("golden light rays", prompts.mood_modifier("VINTAGE-inspired"))
        self.assertIn("adrenaline", prompts.mood_modifier("sporty"))

    def test_first_family_in_table_order_wins(self) -> None:
        # "warm" (family 2) is checked before "luxury" (family 4)
        self.assertIn("nostalgic haze", prompts.mood_modifier("luxury warm"))
        # "bold" (family 1) beats "natural" (family 6)
        self.assertIn("shadow play", prompts.mood_modifier("natural bold"))

    def test_every_family_is_reachable(self) -> None:
        for keywords, modifier in prompts.MOOD_MODIFIERS:
            self.assertEqual(prompts.mood_modifier(keywords[0]), modifier)


class VideoPromptTest(unittest.TestCase):
    def test_clause_order(self) -> None:
        prompt = prompts.video_prompt("elegant", "a woman with a horse")
        self.assertTrue(prompt.startswith("Cinematic slow motion. The scene features a woman with a horse."))
        self.assertIn(
            "The billboard advertisement comes alive with refined golden highlights", prompt
        )
        self.assertTrue(prompt.endswith("The overall feeling is premium, polished, and captivating."))
        self.assertLess(prompt.index("comes alive"), prompt.index("pulls back"))

    def test_fallback_scene_detail(self) -> None:
        prompt = prompts.video_prompt()
        self.assertIn(prompts.DEFAULT_SCENE_DETAIL, prompt)
        self.assertIn(prompts.NO_MOOD_MODIFIER, prompt)

    def test_deterministic(self) -> None:
        self.assertEqual(prompts.video_prompt("bold", "x"), prompts.video_prompt("bold", "x"))


class FixedPromptTest(unittest.TestCase):
    def test_face_swap_prompt_keeps_base_scene(self) -> None:
        self.assertIn("Do not generate a new scene", prompts.FACE_SWAP_PROMPT)
        self.assertIn("Use the FIRST uploaded image only as a facial reference", prompts.FACE_SWAP_PROMPT)

    def test_caption_prompt_quotes_description(self) -> None:
        self.assertIn('"Sporty campaign"', prompts.caption_prompt("Sporty campaign"))
