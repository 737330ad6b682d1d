"""
Learning Profile Engine - Consolidation Engine
Pure scoring, contribution, merge and presentation logic.

Nothing in this package touches the database or the network; the
services layer feeds it profile state and persists what it returns.
"""
from profile_engine.engine.age import age_bucket_from_months
from profile_engine.engine.consolidator import (
    ConsolidationOutcome,
    Consolidator,
    EngineConfig,
)
from profile_engine.engine.contribution import Contribution, contribution
from profile_engine.engine.presenter import present
from profile_engine.engine.scorer import ScoredSubmission, score
from profile_engine.engine.tables import ScoringTable, get_scoring_table

__all__ = [
    "age_bucket_from_months",
    "ConsolidationOutcome",
    "Consolidator",
    "EngineConfig",
    "Contribution",
    "contribution",
    "present",
    "ScoredSubmission",
    "score",
    "ScoringTable",
    "get_scoring_table",
]
