"""
Tests for prompts.py module.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prompts import NO_PROFILE_BLOCK, NOT_SPECIFIED, build_system_prompt


class TestBuildSystemPrompt:
    """Tests for build_system_prompt."""

    def test_full_profile(self):
        prompt = build_system_prompt({
            "name": "Alex",
            "goals": "Weight Loss",
            "level": "Beginner",
            "equipment": ["Resistance Bands", "No Equipment"],
            "time": "15-30 minutes",
        })

        assert "The user's name is Alex." in prompt
        assert "- Goals: Weight Loss" in prompt
        assert "- Fitness level: Beginner" in prompt
        assert "- Available equipment: Resistance Bands, No Equipment" in prompt
        assert "- Time per workout: 15-30 minutes" in prompt

    def test_partial_profile_marks_missing_fields(self):
        prompt = build_system_prompt({"goals": "Endurance", "equipment": []})

        assert "- Goals: Endurance" in prompt
        assert f"- Available equipment: {NOT_SPECIFIED}" in prompt
        assert "The user's name is" not in prompt

    @pytest.mark.parametrize("profile", [None, {}, {"name": "Alex", "goals": "", "equipment": []}])
    def test_empty_profile(self, profile):
        prompt = build_system_prompt(profile)

        assert NO_PROFILE_BLOCK in prompt
        assert "User profile:" not in prompt

    def test_persona_and_guidelines(self):
        prompt = build_system_prompt({})

        assert prompt.startswith("You are AI Gym Buddy")
        assert "300 words" in prompt
        assert "safety" in prompt.lower()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
