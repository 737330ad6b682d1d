"""
Scoring tables.

Each scoring version is one immutable ``ScoringTable``: which questions load
onto which category, the answer scale, the quiz variants with their canonical
question sets, and the label lookup. Tables are built once at import time and
passed by reference into the scorer and the contribution calculator.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from profile_engine.core.exceptions import ValidationError
from profile_engine.engine.age import EXTENDED_BUCKETS
from profile_engine.schemas.enums import AgeBucket, AnswerKind, RespondentRole

ALL_AGES = frozenset(AgeBucket)
FROM_4 = ALL_AGES - {AgeBucket.AGE_3_4}
FROM_5 = FROM_4 - {AgeBucket.AGE_4_5}
FROM_6 = frozenset({AgeBucket.AGE_6_8, AgeBucket.AGE_8_10, AgeBucket.AGE_10_PLUS})
FROM_8 = frozenset({AgeBucket.AGE_8_10, AgeBucket.AGE_10_PLUS})

DEFAULT_LABEL = "Unique Learner"


@dataclass(frozen=True)
class QuestionSpec:
    """One question and the category (or preference) it loads onto."""
    id: int
    category: str
    kind: AnswerKind = AnswerKind.LIKERT
    age_buckets: frozenset = ALL_AGES
    options: tuple[str, ...] = ()

    @property
    def is_scored(self) -> bool:
        return self.kind == AnswerKind.LIKERT


@dataclass(frozen=True)
class QuizVariantSpec:
    """A named question set and how much a submission of it counts."""
    name: str
    roles: frozenset
    scoring_weight: float
    confidence_boost: int
    # None means every question in the table
    question_ids: Optional[tuple[int, ...]] = None
    extended_question_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class ScoringTable:
    version: str
    scale_min: int
    scale_max: int
    categories: tuple[str, ...]  # also the tie-break priority order
    questions: Mapping[int, QuestionSpec]
    variants: Mapping[str, QuizVariantSpec]
    labels: Mapping[frozenset, str]
    default_label: str = DEFAULT_LABEL

    @property
    def scale_span(self) -> int:
        return self.scale_max - self.scale_min

    def variant(self, name: str) -> QuizVariantSpec:
        try:
            return self.variants[name]
        except KeyError:
            raise ValidationError(
                f"Unknown quiz_variant '{name}' for scoring version '{self.version}'. "
                f"Expected one of: {sorted(self.variants)}"
            ) from None

    def category_rank(self, category: str) -> int:
        return self.categories.index(category)

    def expected_questions(self, variant: QuizVariantSpec, age_bucket: AgeBucket) -> tuple[QuestionSpec, ...]:
        """Canonical, age-appropriate question set of *variant* for *age_bucket*."""
        if variant.question_ids is None:
            ids = sorted(self.questions)
        else:
            ids = list(variant.question_ids)
            if age_bucket in EXTENDED_BUCKETS:
                ids.extend(variant.extended_question_ids)
        return tuple(
            self.questions[qid] for qid in ids
            if age_bucket in self.questions[qid].age_buckets
        )

    def label_for(self, primary: str, secondary: str) -> str:
        return self.labels.get(frozenset((primary, secondary)), self.default_label)


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


def _labels(pairs: dict[tuple[str, str], str]) -> Mapping[frozenset, str]:
    return _frozen({frozenset(pair): label for pair, label in pairs.items()})


# ============================================================================
# Legacy 6C table (Likert 1-5, four questions per category)
# ============================================================================

SIX_CS = (
    "Communication",
    "Collaboration",
    "Content",
    "Critical Thinking",
    "Creative Innovation",
    "Confidence",
)

_LEGACY_QUESTIONS = {
    qid: QuestionSpec(id=qid, category=SIX_CS[(qid - 1) // 4])
    for qid in range(1, 25)
}

_LEGACY_LABELS = _labels({
    ("Communication", "Collaboration"): "Social Communicator",
    ("Communication", "Content"): "Knowledge Sharer",
    ("Communication", "Critical Thinking"): "Thoughtful Speaker",
    ("Communication", "Creative Innovation"): "Creative Storyteller",
    ("Communication", "Confidence"): "Confident Leader",
    ("Collaboration", "Content"): "Team Scholar",
    ("Collaboration", "Critical Thinking"): "Strategic Partner",
    ("Collaboration", "Creative Innovation"): "Creative Collaborator",
    ("Collaboration", "Confidence"): "Natural Leader",
    ("Content", "Critical Thinking"): "Analytical Scholar",
    ("Content", "Creative Innovation"): "Innovative Thinker",
    ("Content", "Confidence"): "Confident Learner",
    ("Critical Thinking", "Creative Innovation"): "Creative Problem Solver",
    ("Critical Thinking", "Confidence"): "Bold Analyst",
    ("Creative Innovation", "Confidence"): "Fearless Creator",
})

LEGACY_TABLE = ScoringTable(
    version="legacy",
    scale_min=1,
    scale_max=5,
    categories=SIX_CS,
    questions=_frozen(_LEGACY_QUESTIONS),
    variants=_frozen({
        "home": QuizVariantSpec(
            name="home",
            roles=frozenset({RespondentRole.PARENT}),
            scoring_weight=0.6,
            confidence_boost=30,
            question_ids=(1, 2, 3, 4, 5, 9, 10, 13, 17, 18, 21, 22),
        ),
        "classroom": QuizVariantSpec(
            name="classroom",
            roles=frozenset({RespondentRole.TEACHER}),
            scoring_weight=0.8,
            confidence_boost=40,
            question_ids=(5, 6, 7, 8, 11, 12, 14, 15, 16, 19, 20, 23),
        ),
        "general": QuizVariantSpec(
            name="general",
            roles=frozenset(RespondentRole),
            scoring_weight=1.0,
            confidence_boost=50,
        ),
    }),
    labels=_LEGACY_LABELS,
)


# ============================================================================
# CLP 2.0 table (0-3 scale, 8 skills, extended items for 6+)
# ============================================================================

CLP2_SKILLS = SIX_CS + ("Literacy", "Math")

# question id -> (skill, age buckets)
_CLP2_SKILL_QUESTIONS = {
    1: ("Communication", ALL_AGES),
    2: ("Communication", ALL_AGES),
    3: ("Communication", ALL_AGES),
    4: ("Collaboration", ALL_AGES),
    5: ("Collaboration", ALL_AGES),
    6: ("Collaboration", FROM_4),
    7: ("Content", ALL_AGES),
    8: ("Content", ALL_AGES),
    9: ("Content", FROM_4),
    10: ("Critical Thinking", FROM_4),
    11: ("Critical Thinking", ALL_AGES),
    12: ("Critical Thinking", FROM_5),
    13: ("Creative Innovation", ALL_AGES),
    14: ("Creative Innovation", ALL_AGES),
    15: ("Creative Innovation", FROM_4),
    16: ("Confidence", ALL_AGES),
    17: ("Confidence", FROM_4),
    18: ("Confidence", ALL_AGES),
    19: ("Literacy", ALL_AGES),
    20: ("Literacy", ALL_AGES),
    21: ("Literacy", FROM_4),
    22: ("Math", ALL_AGES),
    23: ("Math", ALL_AGES),
    24: ("Math", FROM_4),
    # Extended items, elementary ages only
    29: ("Communication", FROM_6),
    30: ("Communication", FROM_6),
    31: ("Communication", FROM_8),
    32: ("Collaboration", FROM_6),
    33: ("Collaboration", FROM_8),
    34: ("Collaboration", FROM_8),
    35: ("Content", FROM_6),
    36: ("Content", FROM_6),
    37: ("Content", FROM_8),
    38: ("Critical Thinking", FROM_6),
    39: ("Critical Thinking", FROM_8),
    40: ("Critical Thinking", FROM_8),
    41: ("Creative Innovation", FROM_6),
    42: ("Creative Innovation", FROM_8),
    43: ("Creative Innovation", FROM_8),
    44: ("Confidence", FROM_6),
    45: ("Confidence", FROM_6),
    46: ("Confidence", FROM_8),
    47: ("Literacy", FROM_6),
    48: ("Literacy", FROM_6),
    49: ("Literacy", FROM_8),
    50: ("Math", FROM_6),
    51: ("Math", FROM_8),
    52: ("Math", FROM_8),
}

_CLP2_PREFERENCE_QUESTIONS = {
    25: QuestionSpec(
        id=25,
        category="Engagement",
        kind=AnswerKind.CHOICE,
        options=("hands-on", "visual", "listening", "movement"),
    ),
    26: QuestionSpec(
        id=26,
        category="Modality",
        kind=AnswerKind.CHOICE,
        options=("quiet", "interactive", "creative", "physical"),
    ),
    27: QuestionSpec(
        id=27,
        category="Social",
        kind=AnswerKind.CHOICE,
        options=("independent", "small-group", "large-group", "one-on-one"),
    ),
    28: QuestionSpec(
        id=28,
        category="Interests",
        kind=AnswerKind.MULTI_CHOICE,
        options=("animals", "building", "art", "music", "stories", "science", "sports", "technology"),
    ),
}

_CLP2_QUESTIONS = {
    qid: QuestionSpec(id=qid, category=skill, age_buckets=ages)
    for qid, (skill, ages) in _CLP2_SKILL_QUESTIONS.items()
}
_CLP2_QUESTIONS.update(_CLP2_PREFERENCE_QUESTIONS)

_CLP2_LABELS = _labels({
    ("Communication", "Collaboration"): "Social Communicator",
    ("Communication", "Creative Innovation"): "Creative Storyteller",
    ("Communication", "Confidence"): "Confident Leader",
    ("Communication", "Content"): "Knowledge Communicator",
    ("Communication", "Critical Thinking"): "Thoughtful Communicator",
    ("Communication", "Literacy"): "Language Leader",
    ("Communication", "Math"): "Mathematical Communicator",
    ("Collaboration", "Creative Innovation"): "Creative Collaborator",
    ("Collaboration", "Confidence"): "Natural Leader",
    ("Collaboration", "Content"): "Team Scholar",
    ("Collaboration", "Critical Thinking"): "Strategic Partner",
    ("Collaboration", "Literacy"): "Reading Partner",
    ("Collaboration", "Math"): "Math Team Player",
    ("Creative Innovation", "Critical Thinking"): "Creative Problem Solver",
    ("Creative Innovation", "Confidence"): "Fearless Creator",
    ("Creative Innovation", "Content"): "Innovative Learner",
    ("Creative Innovation", "Literacy"): "Creative Writer",
    ("Creative Innovation", "Math"): "Mathematical Innovator",
    ("Critical Thinking", "Content"): "Analytical Scholar",
    ("Critical Thinking", "Confidence"): "Bold Analyst",
    ("Critical Thinking", "Literacy"): "Critical Reader",
    ("Critical Thinking", "Math"): "Mathematical Thinker",
    ("Confidence", "Content"): "Confident Scholar",
    ("Confidence", "Literacy"): "Reading Champion",
    ("Confidence", "Math"): "Math Confident",
    ("Literacy", "Math"): "Academic All-Star",
    ("Content", "Literacy"): "Knowledge Reader",
    ("Content", "Math"): "Mathematical Scholar",
})

CLP2_TABLE = ScoringTable(
    version="clp2",
    scale_min=0,
    scale_max=3,
    categories=CLP2_SKILLS,
    questions=_frozen(_CLP2_QUESTIONS),
    variants=_frozen({
        # 15 skill questions + 4 preferences
        "home": QuizVariantSpec(
            name="home",
            roles=frozenset({RespondentRole.PARENT}),
            scoring_weight=0.6,
            confidence_boost=30,
            question_ids=(1, 2, 4, 7, 11, 13, 14, 16, 17, 19, 20, 21, 22, 23, 24, 25, 26, 27, 28),
            extended_question_ids=(29, 35, 41, 44, 47, 50),
        ),
        # 12 skill questions, no preferences
        "classroom": QuizVariantSpec(
            name="classroom",
            roles=frozenset({RespondentRole.TEACHER}),
            scoring_weight=0.8,
            confidence_boost=40,
            question_ids=(1, 3, 4, 5, 8, 9, 10, 12, 19, 21, 22, 24),
            extended_question_ids=(30, 32, 36, 38, 39, 48, 51),
        ),
        "general": QuizVariantSpec(
            name="general",
            roles=frozenset(RespondentRole),
            scoring_weight=1.0,
            confidence_boost=50,
        ),
    }),
    labels=_CLP2_LABELS,
)


SCORING_TABLES: Mapping[str, ScoringTable] = _frozen({
    LEGACY_TABLE.version: LEGACY_TABLE,
    CLP2_TABLE.version: CLP2_TABLE,
})


def get_scoring_table(version: str) -> ScoringTable:
    """Return the table registered for *version*."""
    try:
        return SCORING_TABLES[version]
    except KeyError:
        raise ValidationError(
            f"Unknown scoring_version '{version}'. Expected one of: {sorted(SCORING_TABLES)}"
        ) from None
