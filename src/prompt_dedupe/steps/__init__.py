from prompt_dedupe.steps.clustering import DisjointSet, cluster_records
from prompt_dedupe.steps.comparator import ComparisonResult, PairwiseComparator, validate_threshold
from prompt_dedupe.steps.similarity import (
    RecordSimilarity,
    edit_similarity,
    levenshtein,
    normalize_text,
    shingle_similarity,
    text_similarity,
)
from prompt_dedupe.steps.survivor import SurvivorSelector, rank_members, select_keeper

__all__ = [
    "DisjointSet",
    "cluster_records",
    "ComparisonResult",
    "PairwiseComparator",
    "validate_threshold",
    "RecordSimilarity",
    "edit_similarity",
    "levenshtein",
    "normalize_text",
    "shingle_similarity",
    "text_similarity",
    "SurvivorSelector",
    "rank_members",
    "select_keeper",
]
