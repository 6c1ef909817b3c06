"""Perturbation Rule Tables.

Evidence templates, goal-to-skill mapping, rephrasing substitutions, and
removal indicator patterns used by the variant generators. Rules are plain
data: build the defaults with default_rules() or load a replacement set
from JSON with PerturbationRules.load().
"""

import json
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.models.perturbation import EvidenceItem
from src.models.pipeline import CORE_SKILLS


def _check_pattern(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regex {pattern!r}: {e}") from e
    return pattern


class RephraseRule(BaseModel):
    """Meaning-preserving substitution: regex -> one of several synonyms."""

    pattern: str
    replacements: list[str] = Field(min_length=1)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_pattern(v)

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile(self.pattern, re.IGNORECASE)


class RemovalIndicator(BaseModel):
    """Keyword pattern marking a sentence as removable evidence.

    Attributes:
        name: Indicator bucket name (e.g., "leadership")
        pattern: Keyword alternation (e.g., "led|captain|president")
        related_skills: Skills credited to a sentence matched by this indicator
    """

    name: str
    pattern: str
    related_skills: list[str] = Field(default_factory=list)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_pattern(v)

    @property
    def sentence_regex(self) -> re.Pattern[str]:
        """Capture the first sentence containing a keyword, ending at . ! or ?"""
        return re.compile(rf"([^.!?]*(?:{self.pattern})[^.!?]*[.!?])", re.IGNORECASE)

    def find_sentence(self, text: str) -> Optional[str]:
        """Return the first matching sentence, stripped, or None."""
        if not text or not re.search(self.pattern, text, re.IGNORECASE):
            return None
        match = self.sentence_regex.search(text)
        return match.group(1).strip() if match else None


class SkillBucket(BaseModel):
    """Secondary keyword bucket tagging an achievement with skills."""

    pattern: str
    related_skills: list[str] = Field(min_length=1)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_pattern(v)

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


class PerturbationRules(BaseModel):
    """Complete rule set consumed by VariantGenerator."""

    injection_templates: dict[str, list[EvidenceItem]]
    goal_skills: dict[str, list[str]]
    default_injection_skills: list[str] = Field(
        default_factory=lambda: ["problem_solving", "communication"]
    )
    max_injected_items: int = Field(default=2, ge=1)
    rephrase_rules: list[RephraseRule] = Field(default_factory=list)
    activity_indicators: list[RemovalIndicator] = Field(default_factory=list)
    achievement_indicator: Optional[RemovalIndicator] = None
    achievement_skill_buckets: list[SkillBucket] = Field(default_factory=list)
    fallback_skills: list[str] = Field(default_factory=lambda: ["problem_solving"])

    @field_validator("injection_templates")
    @classmethod
    def validate_template_skills(
        cls, v: dict[str, list[EvidenceItem]]
    ) -> dict[str, list[EvidenceItem]]:
        """Template keys must be core skills."""
        unknown = sorted(set(v) - set(CORE_SKILLS))
        if unknown:
            raise ValueError(f"Unknown skills in injection_templates: {unknown}")
        return v

    @classmethod
    def load(cls, rules_path: Path | str) -> "PerturbationRules":
        """Load a rule set from a JSON file.

        Raises:
            FileNotFoundError: If rules file doesn't exist
            ValueError: If rule validation fails
        """
        rules_path = Path(rules_path)
        if not rules_path.exists():
            raise FileNotFoundError(f"Rules file not found: {rules_path}")

        with open(rules_path, "r", encoding="utf-8") as f:
            return cls(**json.load(f))


def _template(type_: str, content: str, *skills: str) -> EvidenceItem:
    return EvidenceItem(type=type_, content=content, related_skills=list(skills))


def default_rules() -> PerturbationRules:
    """Build a fresh copy of the default rule set."""
    templates = {
        "problem_solving": [
            _template(
                "experience",
                "Debugged a complex software issue that stumped my team for weeks",
                "problem_solving",
                "technical_skills",
            ),
            _template(
                "achievement",
                "Won 1st place in a regional problem-solving competition",
                "problem_solving",
            ),
        ],
        "communication": [
            _template(
                "experience",
                "Presented our research findings to a panel of university professors",
                "communication",
            ),
            _template(
                "achievement",
                "Selected as keynote speaker for school assembly of 500+ students",
                "communication",
                "leadership",
            ),
        ],
        "technical_skills": [
            _template(
                "experience",
                "Built a full-stack web application using React and Node.js",
                "technical_skills",
                "problem_solving",
            ),
            _template(
                "achievement",
                "Completed Google's Professional IT Support certification",
                "technical_skills",
            ),
        ],
        "creativity": [
            _template(
                "experience",
                "Designed and illustrated a 40-page graphic novel from scratch",
                "creativity",
            ),
            _template(
                "achievement",
                "Art piece selected for display in the city art museum",
                "creativity",
            ),
        ],
        "leadership": [
            _template(
                "experience",
                "Led a team of 15 volunteers for a community service project",
                "leadership",
                "communication",
            ),
            _template(
                "achievement",
                "Elected student body president with 65% of votes",
                "leadership",
            ),
        ],
        "self_management": [
            _template(
                "experience",
                "Maintained a 4.0 GPA while working 20 hours per week",
                "self_management",
            ),
            _template(
                "achievement",
                "Completed a year-long independent research project ahead of schedule",
                "self_management",
                "problem_solving",
            ),
        ],
    }

    goal_skills = {
        "coding": ["technical_skills", "problem_solving"],
        "stem": ["technical_skills", "problem_solving"],
        "leadership": ["leadership", "communication"],
        "publicSpeaking": ["communication"],
        "creativity": ["creativity"],
        "entrepreneurship": ["leadership", "problem_solving"],
        "college": ["self_management", "problem_solving"],
        "writing": ["communication", "creativity"],
        "career": ["self_management", "leadership"],
        "networking": ["communication", "leadership"],
    }

    rephrase_rules = [
        RephraseRule(pattern=p, replacements=r)
        for p, r in [
            (r"I built", ["I created", "I developed", "I constructed"]),
            (r"I led", ["I headed", "I directed", "I spearheaded"]),
            (r"I organized", ["I coordinated", "I arranged", "I set up"]),
            (r"I won", ["I achieved", "I earned", "I received"]),
            (r"helped", ["assisted", "supported", "aided"]),
            (r"created", ["developed", "produced", "designed"]),
            (r"participated in", ["took part in", "was involved in", "engaged in"]),
            (r"worked on", ["contributed to", "was part of", "engaged with"]),
            (r"managed", ["oversaw", "handled", "coordinated"]),
            (r"taught", ["instructed", "educated", "trained"]),
            (r"competition", ["contest", "tournament", "challenge"]),
            (r"project", ["initiative", "undertaking", "endeavor"]),
            (r"team", ["group", "squad", "unit"]),
            (r"school", ["academic institution", "educational institution", "school"]),
        ]
    ]

    # Scanned in this order; the first hit wins
    activity_indicators = [
        RemovalIndicator(
            name="leadership",
            pattern=r"led|captain|president|organized|founded",
            related_skills=["leadership"],
        ),
        RemovalIndicator(
            name="technical",
            pattern=r"built|coded|programmed|developed|app|software|robot",
            related_skills=["technical_skills", "problem_solving"],
        ),
        RemovalIndicator(
            name="communication",
            pattern=r"presented|spoke|explained|taught|mentored",
            related_skills=["communication"],
        ),
    ]

    achievement_skill_buckets = [
        SkillBucket(
            pattern=r"hackathon|coding|tech|robot",
            related_skills=["technical_skills", "problem_solving"],
        ),
        SkillBucket(pattern=r"debate|speaker|speaking", related_skills=["communication"]),
        SkillBucket(pattern=r"leadership|president|captain", related_skills=["leadership"]),
        SkillBucket(pattern=r"art|creative|design", related_skills=["creativity"]),
    ]

    return PerturbationRules(
        injection_templates=templates,
        goal_skills=goal_skills,
        rephrase_rules=rephrase_rules,
        activity_indicators=activity_indicators,
        achievement_indicator=RemovalIndicator(
            name="achievement",
            pattern=r"won|award|place|recognition|certified",
        ),
        achievement_skill_buckets=achievement_skill_buckets,
    )
