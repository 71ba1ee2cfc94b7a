from prompt_dedupe.datasets.profiles import EXPORT_SCHEMA, PROMPT_SCHEMA
from prompt_dedupe.datasets.reference import ReferenceDatasetGenerator

__all__ = ["EXPORT_SCHEMA", "PROMPT_SCHEMA", "ReferenceDatasetGenerator"]
