"""Perturbation Variant Generators.

Produces controlled variants of a student profile:
- original: unmodified control
- injection (+): 1-2 goal-aligned evidence items appended
- removal (-): one key evidence sentence removed
- rephrased (~): surface wording changed, evidence unchanged

Generators are pure functions of (profile, rules, random source). Pass a
seeded random.Random (or any object with choice/randint) for replayable
variants.

Example Usage:
    from random import Random
    from src.perturbation.generators import VariantGenerator

    generator = VariantGenerator(rng=Random(42))
    variants = generator.generate_all("profile-0", "STEM Student", profile, config)
"""

import random
import re
from typing import Any, Optional, Protocol, Sequence, TypeVar

from src.models.perturbation import (
    EVIDENCE_FIELDS,
    EvidenceItem,
    PerturbationConfig,
    PerturbationType,
    ProfileVariant,
)
from src.models.profile import StudentProfile
from src.perturbation.rules import PerturbationRules, default_rules
from src.utils.logger import get_logger

T = TypeVar("T")

# Free-text fields touched by rephrasing, in recording order
REPHRASABLE_FIELDS: tuple[str, ...] = (
    "past_activities",
    "past_achievements",
    "interests_free_text",
    "goals_free_text",
)

logger = get_logger(
    correlation_id="variant-generation",
    phase="perturbation",
    component="variant_generator",
)


class RandomSource(Protocol):
    """Subset of random.Random used by the generators."""

    def choice(self, seq: Sequence[T]) -> T: ...

    def randint(self, a: int, b: int) -> int: ...


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _append_text(existing: str, addition: str) -> str:
    return " ".join(part for part in (existing.strip(), addition.strip()) if part)


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class VariantGenerator:
    """Generates perturbation variants of student profiles."""

    def __init__(
        self,
        rules: Optional[PerturbationRules] = None,
        rng: Optional[RandomSource] = None,
    ):
        """
        Initialize VariantGenerator.

        Args:
            rules: Rule tables (default: default_rules())
            rng: Random source for template and synonym selection
                (default: unseeded random.Random)
        """
        self.rules = rules if rules is not None else default_rules()
        self.rng: RandomSource = rng if rng is not None else random.Random()

    def generate(
        self,
        perturbation_type: PerturbationType,
        profile_id: str,
        profile_name: str,
        profile: StudentProfile,
    ) -> ProfileVariant:
        """Generate a single variant of the requested type.

        Raises:
            ValueError: If perturbation_type is unknown
        """
        builders = {
            "original": self.original,
            "injection": self.injection,
            "removal": self.removal,
            "rephrased": self.rephrased,
        }
        if perturbation_type not in builders:
            raise ValueError(f"Unknown perturbation type: {perturbation_type}")
        return builders[perturbation_type](profile_id, profile_name, profile)

    def generate_all(
        self,
        profile_id: str,
        profile_name: str,
        profile: StudentProfile,
        config: Optional[PerturbationConfig] = None,
    ) -> list[ProfileVariant]:
        """Generate the original plus one variant per enabled flag.

        Order is fixed: original, injection, removal, rephrased.
        """
        config = config or PerturbationConfig()
        variants = [self.original(profile_id, profile_name, profile)]

        if config.run_injection:
            variants.append(self.injection(profile_id, profile_name, profile))
        if config.run_removal:
            variants.append(self.removal(profile_id, profile_name, profile))
        if config.run_rephrasing:
            variants.append(self.rephrased(profile_id, profile_name, profile))

        return variants

    def original(
        self, profile_id: str, profile_name: str, profile: StudentProfile
    ) -> ProfileVariant:
        """Wrap the unmodified profile as the baseline variant."""
        return ProfileVariant(
            id=f"{profile_id}-original",
            profile_id=profile_id,
            profile_name=profile_name,
            variant_type="original",
            profile=profile,
            perturbation_description="Original profile (baseline)",
        )

    # ------------------------------------------------------------------
    # Injection
    # ------------------------------------------------------------------

    def select_injection_evidence(self, profile: StudentProfile) -> list[EvidenceItem]:
        """Pick 1-2 evidence templates aligned with the profile's goals."""
        relevant = dict.fromkeys(
            skill
            for goal in profile.goals_selected
            for skill in self.rules.goal_skills.get(goal, [])
        )
        skills = list(relevant) or list(self.rules.default_injection_skills)

        count = self.rng.randint(1, self.rules.max_injected_items)
        selected: list[EvidenceItem] = []
        for skill in skills[:count]:
            templates = self.rules.injection_templates.get(skill)
            if templates:
                selected.append(self.rng.choice(templates))

        return selected

    def injection(
        self, profile_id: str, profile_name: str, profile: StudentProfile
    ) -> ProfileVariant:
        """Append goal-aligned evidence to the matching profile fields."""
        evidence = self.select_injection_evidence(profile)

        updates: dict[str, Any] = {}
        for item in evidence:
            field = EVIDENCE_FIELDS[item.type]
            current = updates.get(field, getattr(profile, field))
            updates[field] = _append_text(current, item.content)

        if evidence:
            description = f"Added {len(evidence)} evidence item(s): " + "; ".join(
                _preview(item.content, 50) for item in evidence
            )
        else:
            description = "No evidence templates available for injection"
            logger.warning(
                "Injection produced no evidence",
                profile_id=profile_id,
                goals=profile.goals_selected,
            )

        return ProfileVariant(
            id=f"{profile_id}-injection",
            profile_id=profile_id,
            profile_name=profile_name,
            variant_type="injection",
            profile=profile.model_copy(update=updates, deep=True),
            perturbation_description=description,
            added_evidence=evidence,
        )

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def identify_key_evidence(self, profile: StudentProfile) -> list[EvidenceItem]:
        """Find removable evidence sentences in priority order.

        Activity indicators are scanned first in rule order, then the
        achievement indicator. Achievement skills come from the secondary
        keyword buckets, falling back to the rule set's fallback skills.
        """
        evidence: list[EvidenceItem] = []

        for indicator in self.rules.activity_indicators:
            sentence = indicator.find_sentence(profile.past_activities)
            if sentence:
                evidence.append(
                    EvidenceItem(
                        type="experience",
                        content=sentence,
                        related_skills=list(indicator.related_skills),
                    )
                )

        indicator = self.rules.achievement_indicator
        sentence = indicator.find_sentence(profile.past_achievements) if indicator else None
        if sentence:
            skills: list[str] = []
            for bucket in self.rules.achievement_skill_buckets:
                if bucket.matches(sentence):
                    skills.extend(s for s in bucket.related_skills if s not in skills)
            evidence.append(
                EvidenceItem(
                    type="achievement",
                    content=sentence,
                    related_skills=skills or list(self.rules.fallback_skills),
                )
            )

        return evidence

    def removal(
        self, profile_id: str, profile_name: str, profile: StudentProfile
    ) -> ProfileVariant:
        """Remove one key evidence sentence from the profile."""
        updates: dict[str, Any] = {}
        removed: Optional[EvidenceItem] = None

        key_evidence = self.identify_key_evidence(profile)
        if key_evidence:
            removed = key_evidence[0]
            field = EVIDENCE_FIELDS[removed.type]
            updates[field] = _collapse_whitespace(
                getattr(profile, field).replace(removed.content, "", 1)
            )
        else:
            sentences = [
                s.strip()
                for s in re.split(r"[.!?]+", profile.past_activities)
                if s.strip()
            ]
            if len(sentences) > 1:
                last = sentences.pop()
                updates["past_activities"] = ". ".join(sentences) + "."
                removed = EvidenceItem(
                    type="experience",
                    content=last,
                    related_skills=list(self.rules.fallback_skills),
                )

        if removed is not None:
            description = f'Removed evidence: "{_preview(removed.content, 60)}"'
        else:
            description = "No key evidence identified for removal"
            logger.warning(
                "Removal variant left profile unchanged",
                profile_id=profile_id,
                activities_length=len(profile.past_activities),
            )

        return ProfileVariant(
            id=f"{profile_id}-removal",
            profile_id=profile_id,
            profile_name=profile_name,
            variant_type="removal",
            profile=profile.model_copy(update=updates, deep=True),
            perturbation_description=description,
            removed_evidence=[removed] if removed is not None else [],
        )

    # ------------------------------------------------------------------
    # Rephrasing
    # ------------------------------------------------------------------

    def rephrase_text(self, text: str) -> str:
        """Apply every matching rephrase rule in order.

        Each matching rule picks one replacement and substitutes it for all
        occurrences of its pattern.
        """
        result = text
        for rule in self.rules.rephrase_rules:
            regex = rule.regex
            if regex.search(result):
                replacement = self.rng.choice(rule.replacements)
                result = regex.sub(lambda _match: replacement, result)
        return result

    def rephrased(
        self, profile_id: str, profile_name: str, profile: StudentProfile
    ) -> ProfileVariant:
        """Rephrase the free-text fields without changing their evidence."""
        updates: dict[str, Any] = {}
        rephrased_fields: list[str] = []

        for field in REPHRASABLE_FIELDS:
            original_text = getattr(profile, field)
            if not original_text:
                continue
            new_text = self.rephrase_text(original_text)
            if new_text != original_text:
                updates[field] = new_text
                rephrased_fields.append(field)

        return ProfileVariant(
            id=f"{profile_id}-rephrased",
            profile_id=profile_id,
            profile_name=profile_name,
            variant_type="rephrased",
            profile=profile.model_copy(update=updates, deep=True),
            perturbation_description=(
                f"Rephrased {len(rephrased_fields)} field(s): "
                f"{', '.join(rephrased_fields)}"
            ),
            rephrased_fields=rephrased_fields,
        )
