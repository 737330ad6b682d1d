"""
Recommendation sets stored on the profile after every merge.

The presenter only ever selects from these; it never builds new ones.
"""
from profile_engine.schemas.profile import ProfileState, Recommendations


def build_recommendations(profile: ProfileState, *, complete_at: int = 80) -> Recommendations:
    top = profile.strengths[0] if profile.strengths else None
    grow = profile.growth_areas[0] if profile.growth_areas else None

    home = [
        f"Leverage {top or 'their interests'} through engaging home activities",
        f"Support {grow or 'development'} with low-pressure home practice",
        "Create consistent learning routines that match their learning style",
    ]
    classroom = [
        f"Utilize {top or 'their strengths'} in group activities and projects",
        f"Provide scaffolding for {grow or 'growing skills'} in classroom settings",
        "Consider seating and grouping that supports their learning profile",
    ]
    general = [
        "Celebrate progress and effort over perfection",
        "Provide multiple ways to demonstrate understanding",
        "Maintain open communication between home and school",
    ]
    if profile.has_conflict:
        general.append(
            "Home and classroom observations differ; compare notes on where each behaviour shows up"
        )

    next_steps = []
    if profile.parent_assessments == 0:
        next_steps.append("Consider adding a parent assessment for home behavior insights")
    if profile.teacher_assessments == 0:
        next_steps.append("Consider adding a teacher assessment for classroom behavior insights")
    if profile.total_assessments == 1:
        next_steps.append("Additional assessments will increase profile confidence and accuracy")
    if profile.completeness_percentage < complete_at:
        next_steps.append("Complete assessment or add context-specific assessments for fuller profile")

    return Recommendations(
        home_activities=home,
        classroom_strategies=classroom,
        general_support=general,
        next_assessments=next_steps,
    )
