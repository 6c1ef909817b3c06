"""
Shared fixtures for unit tests.
"""

import pytest

from src.models.profile import InterestCategories, ProfileEntry, StudentProfile


@pytest.fixture
def stem_profile() -> StudentProfile:
    return StudentProfile(
        grade=11,
        interests_free_text="I love coding and robots.",
        interests_by_category=InterestCategories(academic=True, technical=True),
        goals_selected=["coding", "stem", "college"],
        goals_free_text="I want to become a software engineer.",
        time_availability_hours_per_week=10,
        learning_preferences=["handson", "video"],
        past_activities=(
            "I built a weather app using Python and APIs. "
            "I also led my school's robotics club."
        ),
        past_achievements="Won 2nd place at regional hackathon.",
    )


@pytest.fixture
def minimal_profile() -> StudentProfile:
    return StudentProfile(
        grade=9,
        interests_free_text="I like playing video games and hanging out with friends.",
        time_availability_hours_per_week=2,
        learning_preferences=["video"],
        past_activities="I sometimes help my friends with homework.",
    )


@pytest.fixture
def profile_entries(stem_profile, minimal_profile) -> list[ProfileEntry]:
    return [
        ProfileEntry(id="profile-0", name="STEM Student", profile=stem_profile),
        ProfileEntry(id="profile-1", name="Minimal Student", profile=minimal_profile),
    ]
