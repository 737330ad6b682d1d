"""
Learning Profile Engine - Shared Enumerations
Closed value sets used across the engine, the schemas and the API
"""
from enum import Enum


class AgeBucket(str, Enum):
    """Developmental age bucket derived from age in months."""
    AGE_3_4 = "3-4"
    AGE_4_5 = "4-5"
    AGE_5_6 = "5-6"
    AGE_6_8 = "6-8"
    AGE_8_10 = "8-10"
    AGE_10_PLUS = "10+"


class RespondentRole(str, Enum):
    """Who filled in the assessment."""
    PARENT = "parent"
    TEACHER = "teacher"


class ViewingContext(str, Enum):
    """Audience a profile is presented to."""
    PARENT = "parent"
    TEACHER = "teacher"
    NEUTRAL = "neutral"


class ProfileStatus(str, Enum):
    """Lifecycle state of a consolidated profile."""
    NEW = "new"
    PARTIAL = "partial"
    ESTABLISHED = "established"


class ContextDifferential(str, Enum):
    """Degree of disagreement between respondent roles."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnswerKind(str, Enum):
    """How a question is answered."""
    LIKERT = "likert"
    CHOICE = "choice"
    MULTI_CHOICE = "multi_choice"
