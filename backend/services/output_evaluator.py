"""Output evaluator that detects answers lacking grounding."""
from typing import Dict, List

from config import DEFAULT_LANGUAGE


class OutputEvaluator:
    """Flags generated answers that admit the context did not contain the answer."""

    # Phrases indicating the model could not answer from the context, per language
    INSUFFICIENT_PHRASES: Dict[str, List[str]] = {
        "en": [
            "i don't have that information",
            "i don't have enough information",
            "not found in the provided documents",
            "not available in the context",
        ],
        "fa": [
            "اطلاعات کافی در متن موجود نیست",
        ],
    }

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        """
        Initialize OutputEvaluator.

        Args:
            language: Active response language; English markers are always checked
        """
        self.language = language
        self.markers = list(self.INSUFFICIENT_PHRASES[DEFAULT_LANGUAGE])
        if language != DEFAULT_LANGUAGE:
            self.markers.extend(self.INSUFFICIENT_PHRASES.get(language, []))

    def is_insufficient(self, answer: str) -> bool:
        """Return True when the answer contains an "I don't know" marker."""
        # Curly apostrophes are common in model output
        answer_lower = answer.lower().replace("’", "'")
        return any(marker in answer_lower for marker in self.markers)
