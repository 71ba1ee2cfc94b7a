from prompt_dedupe.runners.local import LocalDedupePipeline, PlanOutcome, RunResult, RunStage

__all__ = ["LocalDedupePipeline", "PlanOutcome", "RunResult", "RunStage"]
