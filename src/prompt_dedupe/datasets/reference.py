from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from prompt_dedupe.models import PromptRecord

_VERBS = ["Write", "Summarize", "Translate", "Explain", "Draft", "Review", "Rewrite", "Outline"]
_OBJECTS = [
    "a poem",
    "a product description",
    "an email reply",
    "a cover letter",
    "a bug report",
    "a meeting agenda",
    "a blog intro",
    "a tweet thread",
]
_TOPICS = [
    "the sea",
    "remote work",
    "a new coffee grinder",
    "quarterly results",
    "a late delivery",
    "onboarding new hires",
    "password hygiene",
    "autumn in the mountains",
    "a failed deployment",
    "a museum opening",
]
_STYLES = ["in a friendly tone", "in under 100 words", "for a technical audience", "with three bullet points", "as a haiku"]
_SYNONYMS = {"short": "brief", "about": "on", "Compose": "Write", "friendly": "warm", "new": "brand-new"}

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class ReferenceDatasetGenerator:
    """Generate synthetic prompts (with intentional near-duplicates) for tests and benchmarks."""

    def __init__(self, seed: int = 7) -> None:
        self._rng = random.Random(seed)

    def generate(self, size: int, duplicate_rate: float = 0.15) -> list[PromptRecord]:
        if size <= 0:
            return []

        records: list[PromptRecord] = []
        unique_count = int(size * (1.0 - duplicate_rate))
        unique_count = max(1, min(unique_count, size))

        for i in range(unique_count):
            title, body = self._original(i)
            created = _EPOCH + timedelta(hours=i)
            records.append(
                PromptRecord(
                    record_id=f"prm_{i:07d}",
                    title=title,
                    body=body,
                    created_at=created,
                    updated_at=created + timedelta(minutes=self._rng.randint(0, 600)),
                )
            )

        while len(records) < size:
            source = self._rng.choice(records[:unique_count])
            created = source.created_at + timedelta(days=self._rng.randint(1, 30))
            records.append(
                PromptRecord(
                    record_id=f"prm_{len(records):07d}",
                    title=self._perturb(source.title),
                    body=self._perturb(source.body),
                    created_at=created,
                    updated_at=created + timedelta(minutes=self._rng.randint(0, 600)),
                )
            )

        self._rng.shuffle(records)
        return records

    def _original(self, idx: int) -> tuple[str, str]:
        verb = self._rng.choice(_VERBS)
        obj = self._rng.choice(_OBJECTS)
        topic = self._rng.choice(_TOPICS)
        style = self._rng.choice(_STYLES)
        title = f"{verb} {obj} about {topic}"
        body = (
            f"Compose {obj} about {topic} {style}. "
            f"Keep the wording short and concrete, and end with a question for the reader. "
            f"Reference #{idx}."
        )
        return title, body

    def _perturb(self, text: str) -> str:
        mutation = self._rng.choice(["punctuation", "case", "whitespace", "synonym", "mixed"])

        if mutation in {"punctuation", "mixed"}:
            text = text.rstrip(".!?") + self._rng.choice(["!", ".", "?", "..."])
        if mutation in {"case", "mixed"}:
            text = self._rng.choice([text.upper(), text.lower(), text.capitalize()])
        if mutation == "whitespace":
            text = text.replace(" ", self._rng.choice(["  ", " \n", "\t"]), 2)
        if mutation == "synonym":
            for original, replacement in _SYNONYMS.items():
                if original in text:
                    text = text.replace(original, replacement, 1)
                    break
        return text
