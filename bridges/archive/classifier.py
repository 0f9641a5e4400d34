"""
Category Classifier

Keyword-based classification of free text against an ordered rule table.

Algorithm:
1. Lower-case the text
2. Walk the rules in table order
3. Return the label of the first rule with any keyword contained in the text
4. Otherwise return "Uncategorized"

Earlier rules take precedence over later ones even when both match.
"""

from typing import Iterable, List, Optional, Sequence

from .rule_parser import CategoryRule, DEFAULT_RULES

UNCATEGORIZED = "Uncategorized"


def classify(text: Optional[str], rules: Sequence[CategoryRule] = DEFAULT_RULES) -> str:
    """
    Classify text into a single category label.

    Args:
        text: Free text (None or empty is allowed)
        rules: Ordered rule table

    Returns:
        Label of the first matching rule, or "Uncategorized"
    """
    lowered = (text or "").lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.label
    return UNCATEGORIZED


def classify_all(texts: Iterable[Optional[str]], rules: Sequence[CategoryRule] = DEFAULT_RULES) -> List[str]:
    """Distinct labels for a set of texts, classified one by one, in first-seen order"""
    labels: List[str] = []
    for text in texts:
        label = classify(text, rules)
        if label not in labels:
            labels.append(label)
    return labels
