"""Hallucination Detection.

Flags pipeline output that cannot be traced back to the student's own
input text:
- skill evidence phrases missing from the profile
- recommendation reasoning that cites claims the student never made
- action plan tasks whose evidence source matches no recommendation,
  skill gap, or profile text
"""

import re
from typing import Optional

from src.models.comparison import HallucinationCheck
from src.models.config import ComparisonThresholds
from src.models.pipeline import CORE_SKILLS, PipelineResults
from src.models.profile import StudentProfile

# Phrases that introduce a claim about the student in recommendation reasoning
CLAIM_PATTERNS: tuple[str, ...] = (
    r"student (?:has|mentioned|demonstrated|showed|exhibited) ([^,.]+)",
    r"based on (?:the student's|their) ([^,.]+)",
    r"given (?:the student's|their) ([^,.]+)",
)

MAX_REASONS = 5


def build_evidence_corpus(profile: StudentProfile) -> str:
    """Concatenate all free-text and categorical profile fields, lowercased."""
    parts = [
        profile.interests_free_text,
        profile.goals_free_text,
        profile.past_activities,
        profile.past_achievements,
        profile.challenges,
        " ".join(profile.goals_selected),
        " ".join(profile.learning_preferences),
    ]
    return " ".join(parts).lower()


def _significant_words(text: str, min_length: int) -> list[str]:
    return [word for word in text.split() if len(word) > min_length]


def is_traceable(
    phrase: str, corpus: str, thresholds: Optional[ComparisonThresholds] = None
) -> bool:
    """Check whether a phrase can be traced to the evidence corpus.

    True on a direct substring match, or when at least traceable_word_ratio
    of the phrase's significant words appear in the corpus. Phrases without
    significant words are too short to judge and count as traceable.
    """
    thresholds = thresholds or ComparisonThresholds()
    normalized = phrase.lower().strip()

    if normalized in corpus:
        return True

    words = _significant_words(normalized, thresholds.significant_word_length)
    if not words:
        return True

    found = [word for word in words if word in corpus]
    return len(found) >= len(words) * thresholds.traceable_word_ratio


def detect_hallucinations(
    profile: StudentProfile,
    results: PipelineResults,
    thresholds: Optional[ComparisonThresholds] = None,
    claim_patterns: tuple[str, ...] = CLAIM_PATTERNS,
) -> HallucinationCheck:
    """Detect pipeline output not traceable to the profile.

    Args:
        profile: Profile the pipeline was run on
        results: Pipeline output for that profile
        thresholds: Comparison thresholds (default: ComparisonThresholds())
        claim_patterns: Regexes whose first group captures a claimed fact

    Returns:
        HallucinationCheck. One untraced recommendation claim is tolerated;
        any untraced skill evidence or plan step is not.
    """
    thresholds = thresholds or ComparisonThresholds()
    corpus = build_evidence_corpus(profile)

    untraced_skills: list[str] = []
    untraced_recommendations: list[str] = []
    untraced_plan_steps: list[str] = []
    reasons: list[str] = []

    if results.intake_analysis is not None:
        for skill in CORE_SKILLS:
            signal = results.intake_analysis.signal(skill)
            if not signal.evidence_found:
                continue
            for phrase in signal.evidence_phrases:
                if not is_traceable(phrase, corpus, thresholds):
                    untraced_skills.append(f'{skill}: "{phrase}"')
                    reasons.append(f'Evidence phrase "{phrase}" for {skill} not found in input')

    if results.recommendations is not None:
        compiled = [re.compile(pattern, re.IGNORECASE) for pattern in claim_patterns]
        for _category, rec in results.recommendations.categorized():
            reasoning = rec.reasoning.lower()
            for pattern in compiled:
                for match in pattern.finditer(reasoning):
                    claim = match.group(1).strip()
                    if len(claim) <= 5 or claim[:10] in corpus:
                        continue
                    words = _significant_words(claim, thresholds.significant_word_length)
                    found = [word for word in words if word in corpus]
                    if (
                        len(words) >= thresholds.claim_min_words
                        and len(found) < len(words) * thresholds.claim_word_overlap
                    ):
                        untraced_recommendations.append(f'{rec.title}: "{match.group(0)}"')
                        reasons.append(
                            f'Recommendation "{rec.title}" references unverified claim: '
                            f'"{match.group(0)}"'
                        )

    if results.action_plan is not None:
        titles = (
            [rec.title.lower() for _c, rec in results.recommendations.categorized()]
            if results.recommendations is not None
            else []
        )
        gap_skills = (
            [gap.skill.lower() for gap in results.skill_gap_analysis.skill_gaps if gap.skill]
            if results.skill_gap_analysis is not None
            else []
        )

        for week in results.action_plan.weeks:
            for task in week.tasks:
                source = task.evidence_source.lower().strip()
                if len(source) <= 5:
                    continue
                from_recommendation = any(
                    title in source or source[:20] in title for title in titles if title
                )
                from_skill_gap = any(skill in source for skill in gap_skills)
                if from_recommendation or from_skill_gap:
                    continue
                if not is_traceable(source, corpus, thresholds):
                    untraced_plan_steps.append(f'Week {week.week_number}: "{task.title}"')
                    reasons.append(
                        f'Task "{task.title}" evidence source not traceable: "{source}"'
                    )

    has_hallucinations = (
        bool(untraced_skills)
        or len(untraced_recommendations) > thresholds.tolerated_untraced_recommendations
        or bool(untraced_plan_steps)
    )

    if reasons:
        reasoning = "; ".join(reasons[:MAX_REASONS])
        if len(reasons) > MAX_REASONS:
            reasoning += f"... and {len(reasons) - MAX_REASONS} more"
    else:
        reasoning = "All outputs are traceable to input evidence"

    return HallucinationCheck(
        has_hallucinations=has_hallucinations,
        untraced_skills=untraced_skills,
        untraced_recommendations=untraced_recommendations,
        untraced_plan_steps=untraced_plan_steps,
        reasoning=reasoning,
    )
