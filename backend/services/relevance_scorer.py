"""
Lexical relevance scoring between a question and a chunk of text.

Scores combine exact token matches weighted by term frequency, partial
substring matches, an exact-phrase bonus and a query-coverage reward, then
damp the total by query length. The score is unbounded above and never
negative; callers compare it against the relevance floors in config.

Known limitation: the phrase threshold and the substring partial match are
heuristics and can fire on short common words.
"""
import re
from typing import Dict, List, Sequence

# Accent folding applied after lowercasing
ACCENT_FOLDING: Dict[str, str] = {
    "ó": "o", "á": "a", "é": "e", "í": "i", "ú": "u",
    "ñ": "n", "ç": "c", "ü": "u", "ö": "o", "ä": "a",
}

# Scoring weights
PHRASE_BONUS = 40.0
PHRASE_MIN_LENGTH = 8
EXACT_MATCH_WEIGHT = 12.0
TF_BOOST = 0.1
PARTIAL_MATCH_BONUS = 4.0
PARTIAL_MIN_LENGTH = 4
COVERAGE_WEIGHT = 20.0
LENGTH_DAMPING = 0.05

_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_ACCENTS = re.compile("|".join(map(re.escape, ACCENT_FOLDING)))


def normalize_for_scoring(text: str) -> str:
    """Lowercase, fold accents, keep only [a-z0-9 ] and collapse whitespace."""
    text = _ACCENTS.sub(lambda m: ACCENT_FOLDING[m.group(0)], text.lower())
    text = _NON_ALNUM.sub(" ", text)
    return " ".join(text.split())


def tokenize_question(question: str) -> List[str]:
    """Split a question into lowercase whitespace-delimited tokens."""
    return question.lower().split()


def score_chunk(query_tokens: Sequence[str], chunk_text: str) -> float:
    """
    Compute the relevance of a chunk to a tokenized query.

    Args:
        query_tokens: Question tokens (see tokenize_question)
        chunk_text: Raw chunk text

    Returns:
        Non-negative relevance score; 0.0 when either side has no tokens
    """
    normalized_chunk = normalize_for_scoring(chunk_text)
    normalized_query = normalize_for_scoring(" ".join(query_tokens))

    chunk_tokens = normalized_chunk.split()
    question_tokens = normalized_query.split()
    if not chunk_tokens or not question_tokens:
        return 0.0

    score = 0.0

    if len(normalized_query) >= PHRASE_MIN_LENGTH and normalized_query in normalized_chunk:
        score += PHRASE_BONUS

    term_frequency: Dict[str, int] = {}
    for token in chunk_tokens:
        term_frequency[token] = term_frequency.get(token, 0) + 1

    covered = 0
    for token in question_tokens:
        tf = term_frequency.get(token, 0)
        if tf > 0:
            covered += 1
            score += EXACT_MATCH_WEIGHT * (1.0 + TF_BOOST * (tf - 1))
            continue

        if len(token) >= PARTIAL_MIN_LENGTH:
            if any(token in other or other in token for other in term_frequency):
                score += PARTIAL_MATCH_BONUS

    score += COVERAGE_WEIGHT * (covered / len(question_tokens))

    return score / (1.0 + LENGTH_DAMPING * len(question_tokens))
