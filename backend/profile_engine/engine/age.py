"""
Age bucket routing.

Breakpoints are in months: under 3.5 years is the early preschool set,
3.5-5.5 the pre-K set, 5.5-7 kindergarten / first grade, then the
elementary buckets whose question sets include the extended items.
"""
from profile_engine.core.exceptions import ValidationError
from profile_engine.schemas.enums import AgeBucket

AGE_BREAKPOINTS: tuple[tuple[int, AgeBucket], ...] = (
    (42, AgeBucket.AGE_3_4),
    (66, AgeBucket.AGE_4_5),
    (84, AgeBucket.AGE_5_6),
    (108, AgeBucket.AGE_6_8),
    (132, AgeBucket.AGE_8_10),
)

# Buckets that unlock the extended question set
EXTENDED_BUCKETS = frozenset({
    AgeBucket.AGE_6_8,
    AgeBucket.AGE_8_10,
    AgeBucket.AGE_10_PLUS,
})


def age_bucket_from_months(age_months: int) -> AgeBucket:
    """Map a precise age in months onto its age bucket."""
    if age_months < 0:
        raise ValidationError(f"age_months must be non-negative, got {age_months}")
    for upper, bucket in AGE_BREAKPOINTS:
        if age_months < upper:
            return bucket
    return AgeBucket.AGE_10_PLUS
