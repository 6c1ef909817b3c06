"""
Student Profile Data Models

Intake form data for a single student. Profiles are treated as immutable
input: perturbation variants always receive their own copy.
"""

from pydantic import BaseModel, ConfigDict, Field


class InterestCategories(BaseModel):
    """Checkbox interest categories from the intake form."""

    model_config = ConfigDict(frozen=True)

    academic: bool = False
    creative: bool = False
    social: bool = False
    technical: bool = False
    sports: bool = False
    music: bool = False
    business: bool = False
    health_wellness: bool = False
    other: bool = False

    def selected(self) -> list[str]:
        """Return names of the categories that are checked."""
        return [name for name, checked in self.model_dump().items() if checked]


class SelfRatedSkills(BaseModel):
    """Student's own 0-100 rating of the six core skills."""

    model_config = ConfigDict(frozen=True)

    problem_solving: int = Field(default=50, ge=0, le=100)
    communication: int = Field(default=50, ge=0, le=100)
    technical_skills: int = Field(default=50, ge=0, le=100)
    creativity: int = Field(default=50, ge=0, le=100)
    leadership: int = Field(default=50, ge=0, le=100)
    self_management: int = Field(default=50, ge=0, le=100)


class StudentProfile(BaseModel):
    """Student self-assessment profile.

    Attributes:
        grade: School grade (e.g., 9-12)
        interests_free_text: Interests in the student's own words
        interests_by_category: Checked interest categories
        goals_selected: Goal ids picked from the form (e.g., "coding", "leadership")
        goals_free_text: Goals in the student's own words
        time_availability_hours_per_week: Weekly hours available
        learning_preferences: Preferred learning modes (e.g., "handson", "video")
        past_activities: Free-text activities (main evidence source)
        past_achievements: Free-text awards and achievements
        challenges: Free-text challenges
        skills: Self-rated skill levels
    """

    model_config = ConfigDict(frozen=True)

    grade: int = Field(default=9, ge=1, le=16)
    interests_free_text: str = ""
    interests_by_category: InterestCategories = Field(
        default_factory=InterestCategories
    )
    goals_selected: list[str] = Field(default_factory=list)
    goals_free_text: str = ""
    time_availability_hours_per_week: float = Field(default=5, ge=0)
    learning_preferences: list[str] = Field(default_factory=list)
    past_activities: str = ""
    past_achievements: str = ""
    challenges: str = ""
    skills: SelfRatedSkills = Field(default_factory=SelfRatedSkills)


class ProfileEntry(BaseModel):
    """Named profile submitted to a perturbation batch."""

    id: str
    name: str
    profile: StudentProfile
