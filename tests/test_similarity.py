import pytest

from conftest import make_record
from prompt_dedupe.errors import InputError
from prompt_dedupe.steps.similarity import (
    RecordSimilarity,
    edit_similarity,
    levenshtein,
    normalize_text,
    shingle_similarity,
    shingles,
    text_similarity,
)

_SAMPLES = [
    "",
    "a",
    "Write a poem",
    "write   a poem!",
    "Compose a short poem about the sea.",
    "Summarize the quarterly results in three bullet points",
    "x" * 1200,
    ("lorem ipsum dolor sit amet " * 50).strip(),
]


def test_normalize_text_lowercases_and_collapses_whitespace() -> None:
    assert normalize_text("  Hello \n\t World  ") == "hello world"
    assert normalize_text(None) == ""


def test_normalize_text_rejects_non_text() -> None:
    with pytest.raises(TypeError):
        normalize_text(42)  # type: ignore[arg-type]


def test_levenshtein_classic_distances() -> None:
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("abc", "abc") == 0


def test_edit_similarity_edge_cases() -> None:
    assert edit_similarity("", "") == 1.0
    assert edit_similarity("", "abc") == 0.0
    assert edit_similarity("abc", None) == 0.0
    assert edit_similarity("Same  Text", "same text") == 1.0
    assert edit_similarity("write a poem", "write a poem!") == pytest.approx(1 - 1 / 13)


def test_shingle_similarity_is_jaccard_of_trigrams() -> None:
    assert shingles("abcd") == {"abc", "bcd"}
    # {abc, bcd} vs {abc, bce}: one shared of three
    assert shingle_similarity("abcd", "abce") == pytest.approx(1 / 3)
    assert shingle_similarity("", "") == 1.0
    assert shingle_similarity("abcd", "") == 0.0


def test_text_similarity_switches_to_shingles_at_cutoff() -> None:
    long_a = "alpha beta gamma " * 70
    long_b = long_a + "delta"
    assert len(normalize_text(long_a)) >= 1000
    assert text_similarity(long_a, long_b) == pytest.approx(shingle_similarity(long_a, long_b))
    assert text_similarity("abc", "abd", length_cutoff=3) == pytest.approx(shingle_similarity("abc", "abd"))
    assert text_similarity("abc", "abd", length_cutoff=4) == pytest.approx(edit_similarity("abc", "abd"))


@pytest.mark.parametrize("left", _SAMPLES)
@pytest.mark.parametrize("right", _SAMPLES)
def test_text_similarity_is_symmetric(left: str, right: str) -> None:
    assert text_similarity(left, right) == text_similarity(right, left)


@pytest.mark.parametrize("text", _SAMPLES)
def test_text_similarity_identity(text: str) -> None:
    assert text_similarity(text, text) == 1.0


def test_record_similarity_weights_title_and_body() -> None:
    left = make_record("1", "Write a poem", "Compose a short poem about the sea.")
    right = make_record("2", "Write a poem!", "Compose a short poem about the sea.")

    score = RecordSimilarity().score(left, right)

    assert score == pytest.approx(0.4 * (1 - 1 / 13) + 0.6)
    assert score > 0.9
    assert RecordSimilarity().score(left, right) == RecordSimilarity().score(right, left)
    assert RecordSimilarity().score(left, left) == 1.0


def test_record_similarity_treats_missing_fields_as_empty() -> None:
    left = make_record("1", "", "Same body")
    right = make_record("2", "", "Same body")
    assert RecordSimilarity().score(left, right) == 1.0

    untitled = make_record("3", "", "Same body")
    titled = make_record("4", "A title", "Same body")
    assert RecordSimilarity().score(untitled, titled) == pytest.approx(0.6)


def test_record_similarity_rejects_bad_weights() -> None:
    with pytest.raises(InputError):
        RecordSimilarity(title_weight=0.5, body_weight=0.6)
    with pytest.raises(InputError):
        RecordSimilarity(title_weight=-0.1, body_weight=1.1)
