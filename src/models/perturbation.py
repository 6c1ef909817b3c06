"""
Perturbation Data Models

Evidence items, profile variants, and batch configuration for robustness
testing.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.profile import ProfileEntry, StudentProfile

PerturbationType = Literal["original", "injection", "removal", "rephrased"]
EvidenceType = Literal["experience", "achievement", "goal"]

# Generation and reporting order of variant types
VARIANT_ORDER: tuple[str, ...] = ("original", "injection", "removal", "rephrased")

# Profile field that receives or loses each evidence type
EVIDENCE_FIELDS: dict[str, str] = {
    "experience": "past_activities",
    "achievement": "past_achievements",
    "goal": "goals_free_text",
}


class EvidenceItem(BaseModel):
    """Piece of evidence added to or removed from a profile."""

    model_config = ConfigDict(frozen=True)

    type: EvidenceType
    content: str
    related_skills: list[str] = Field(default_factory=list)


class ProfileVariant(BaseModel):
    """Perturbed copy of a profile with a record of what changed.

    Exactly one of added_evidence / removed_evidence / rephrased_fields is
    set, matching variant_type. The original variant carries none. A set
    field may be an empty list when the generator found nothing to change.
    """

    id: str
    profile_id: str
    profile_name: str
    variant_type: PerturbationType
    profile: StudentProfile
    perturbation_description: str
    added_evidence: Optional[list[EvidenceItem]] = None
    removed_evidence: Optional[list[EvidenceItem]] = None
    rephrased_fields: Optional[list[str]] = None

    @model_validator(mode="after")
    def check_change_record(self) -> "ProfileVariant":
        """Validate the change record matches the variant type."""
        populated = {
            "injection": self.added_evidence is not None,
            "removal": self.removed_evidence is not None,
            "rephrased": self.rephrased_fields is not None,
        }
        for variant_type, is_set in populated.items():
            if is_set != (variant_type == self.variant_type):
                raise ValueError(
                    f"{self.variant_type} variant has an inconsistent change record: "
                    f"added_evidence={self.added_evidence is not None}, "
                    f"removed_evidence={self.removed_evidence is not None}, "
                    f"rephrased_fields={self.rephrased_fields is not None}"
                )
        return self

    def changed_skills(self) -> set[str]:
        """Skills tied to the evidence this variant added or removed."""
        items = self.added_evidence or self.removed_evidence or []
        return {skill.lower() for item in items for skill in item.related_skills}


class PerturbationConfig(BaseModel):
    """Which profiles and variant types a batch runs."""

    selected_profile_ids: list[str] = Field(default_factory=list)
    run_injection: bool = True
    run_removal: bool = True
    run_rephrasing: bool = True
    skip_action_plan: bool = False

    def variant_count(self) -> int:
        """Variants generated per profile, including the original."""
        return 1 + sum([self.run_injection, self.run_removal, self.run_rephrasing])


class PerturbationBatch(BaseModel):
    """Input to one orchestrator run."""

    profiles: list[ProfileEntry]
    config: PerturbationConfig = Field(default_factory=PerturbationConfig)

    def selected_profiles(self) -> list[ProfileEntry]:
        """Profiles picked by config.selected_profile_ids (all if empty)."""
        if not self.config.selected_profile_ids:
            return list(self.profiles)
        wanted = set(self.config.selected_profile_ids)
        return [entry for entry in self.profiles if entry.id in wanted]
