"""Near-duplicate prompt reconciliation: similarity, clustering, survivor plans and audit replay."""

from prompt_dedupe.models import Cluster, DeduplicationPlan, PromptRecord, SimilarityEdge
from prompt_dedupe.schema import FieldTag, RecordSchema

__all__ = ["Cluster", "DeduplicationPlan", "PromptRecord", "SimilarityEdge", "FieldTag", "RecordSchema"]
