"""
Unit tests for perturbation rule tables.
"""

import json

import pytest
from pydantic import ValidationError

from src.perturbation.rules import (
    PerturbationRules,
    RemovalIndicator,
    RephraseRule,
    default_rules,
)


class TestRemovalIndicator:
    """Test cases for RemovalIndicator.find_sentence."""

    def test_finds_first_matching_sentence(self):
        """Test that the matched sentence is returned whole and stripped."""
        indicator = RemovalIndicator(name="leadership", pattern="led|captain")

        sentence = indicator.find_sentence(
            "I like math. I also led the chess club! We won twice."
        )

        assert sentence == "I also led the chess club!"

    def test_keyword_without_sentence_terminator(self):
        """Test that an unterminated sentence is not removable."""
        indicator = RemovalIndicator(name="leadership", pattern="led")

        assert indicator.find_sentence("I led the team") is None

    def test_invalid_pattern_rejected(self):
        """Test that rule patterns must compile."""
        with pytest.raises(ValidationError, match="Invalid regex"):
            RemovalIndicator(name="broken", pattern="led(")


class TestPerturbationRules:
    """Test cases for the rule set."""

    def test_default_rules_cover_all_skills(self):
        """Test that every core skill has two injection templates."""
        rules = default_rules()

        assert len(rules.injection_templates) == 6
        assert all(len(t) == 2 for t in rules.injection_templates.values())
        assert [i.name for i in rules.activity_indicators] == [
            "leadership",
            "technical",
            "communication",
        ]

    def test_default_rules_are_fresh_copies(self):
        """Test that each call builds an independent rule set."""
        first = default_rules()
        first.goal_skills["coding"].append("creativity")

        assert default_rules().goal_skills["coding"] == ["technical_skills", "problem_solving"]

    def test_unknown_template_skill_rejected(self):
        """Test that template keys must be core skills."""
        with pytest.raises(ValidationError, match="Unknown skills"):
            PerturbationRules(injection_templates={"juggling": []}, goal_skills={})

    def test_rephrase_rule_needs_replacement(self):
        """Test that a rephrase rule has at least one replacement."""
        with pytest.raises(ValidationError):
            RephraseRule(pattern="team", replacements=[])

    def test_load_roundtrip(self, tmp_path):
        """Test that a dumped rule set loads back unchanged."""
        # Arrange
        path = tmp_path / "rules.json"
        path.write_text(default_rules().model_dump_json(), encoding="utf-8")

        # Act
        loaded = PerturbationRules.load(path)

        # Assert
        assert loaded == default_rules()

    def test_load_missing_file(self, tmp_path):
        """Test that a missing rules file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            PerturbationRules.load(tmp_path / "rules.json")

    def test_load_minimal_file(self, tmp_path):
        """Test that optional tables take their defaults."""
        # Arrange
        path = tmp_path / "rules.json"
        path.write_text(
            json.dumps(
                {
                    "injection_templates": {
                        "creativity": [
                            {"type": "experience", "content": "Painted a mural", "related_skills": ["creativity"]}
                        ]
                    },
                    "goal_skills": {"art": ["creativity"]},
                }
            ),
            encoding="utf-8",
        )

        # Act
        rules = PerturbationRules.load(path)

        # Assert
        assert rules.rephrase_rules == []
        assert rules.achievement_indicator is None
        assert rules.fallback_skills == ["problem_solving"]
