"""
Label Normalizer

Canonicalizes free-text species labels so that results from different
providers can be compared, e.g. "Bengal Tiger" and "tiger".
"""

import re
from typing import List

_NON_ALPHA = re.compile(r"[^a-z\s]")


class LabelNormalizer:
    """
    Tolerant label equality used for ensemble grouping.

    Two labels are similar when any token of one contains, or is
    contained in, any token of the other, or when the two tokens are
    within MAX_EDIT_DISTANCE edits of each other.
    """

    MAX_EDIT_DISTANCE = 2

    def normalize(self, label: str) -> str:
        """Lowercase, trim and strip everything outside [a-z] and whitespace."""
        if not label:
            return ""
        return _NON_ALPHA.sub("", label.lower().strip())

    def tokens(self, label: str) -> List[str]:
        return label.split()

    def are_similar(self, label_a: str, label_b: str) -> bool:
        """
        Check whether two normalized labels refer to the same species.

        Empty labels are only similar to other empty labels.
        """
        tokens_a = self.tokens(label_a)
        tokens_b = self.tokens(label_b)

        if not tokens_a or not tokens_b:
            return not tokens_a and not tokens_b

        for word_a in tokens_a:
            for word_b in tokens_b:
                if word_a in word_b or word_b in word_a:
                    return True
                if self.levenshtein_distance(word_a, word_b) <= self.MAX_EDIT_DISTANCE:
                    return True
        return False

    @staticmethod
    def levenshtein_distance(a: str, b: str) -> int:
        """Classic edit distance (insert, delete, substitute all cost 1)."""
        if a == b:
            return 0
        if not a:
            return len(b)
        if not b:
            return len(a)

        previous = list(range(len(b) + 1))
        for i, char_a in enumerate(a, start=1):
            current = [i]
            for j, char_b in enumerate(b, start=1):
                if char_a == char_b:
                    current.append(previous[j - 1])
                else:
                    current.append(min(
                        previous[j - 1] + 1,  # substitution
                        current[j - 1] + 1,   # insertion
                        previous[j] + 1,      # deletion
                    ))
            previous = current
        return previous[-1]
