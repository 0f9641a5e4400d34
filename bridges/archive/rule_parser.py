"""
Category Rule Parser

Parses the ordered category rule table from patterns/category-rules.md.

File format:
    ## Label
    - keyword
    - another keyword

Rule order in the file is evaluation order: the first matching rule wins.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..common.config import PATTERNS_DIR

logger = logging.getLogger("bridges.archive.rule_parser")


@dataclass(frozen=True)
class CategoryRule:
    """A label and the keyword substrings that select it (case-insensitive)"""
    label: str
    keywords: Tuple[str, ...]

    def __post_init__(self):
        normalized = tuple(k.lower() for k in self.keywords if k and k.strip())
        object.__setattr__(self, "keywords", normalized)

    def matches(self, lowered_text: str) -> bool:
        """True if any keyword occurs in already lower-cased text"""
        return any(keyword in lowered_text for keyword in self.keywords)


DEFAULT_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule("NetSuite/P21", ("netsuite", "p21", "erp", "integration")),
    CategoryRule("Business", ("meeting", "strategy", "planning", "budget")),
    CategoryRule("Development", ("code", "github", "deploy", "bug", "feature")),
    CategoryRule("Tools", ("notion", "discord", "chatgpt", "claude", "sharex")),
    CategoryRule("Vegas/MGM", ("vegas", "mgm", "conference", "travel")),
    CategoryRule("Family", ("family", "personal", "vacation")),
    CategoryRule("Tech/Hardware", ("server", "hardware", "network", "setup")),
)


def rules_from_pairs(pairs: Iterable[Tuple[str, Sequence[str]]]) -> Tuple[CategoryRule, ...]:
    """Build an ordered rule table from (label, keywords) pairs"""
    return tuple(CategoryRule(label, tuple(keywords)) for label, keywords in pairs)


def _clean_keyword(raw: str) -> str:
    """Strip list quoting: "kw", 'kw' or `kw`"""
    keyword = raw.strip()
    if len(keyword) >= 2 and keyword[0] == keyword[-1] and keyword[0] in "\"'`":
        keyword = keyword[1:-1].strip()
    return keyword


def parse_category_rules(md_path: str) -> Tuple[CategoryRule, ...]:
    """
    Parse a category-rules markdown file into an ordered rule table.

    Args:
        md_path: Path to the rules file

    Returns:
        Tuple of CategoryRule in file order. A label that appears twice
        keeps its first position and gains the later keywords. Labels
        without keywords are dropped.
    """
    path = Path(md_path)
    if not path.exists():
        raise FileNotFoundError(f"Category rules file not found: {md_path}")

    content = path.read_text(encoding="utf-8")

    order: List[str] = []
    keywords_by_label = {}
    current_label: Optional[str] = None
    in_comment = False

    for line in content.split("\n"):
        line_stripped = line.strip()

        # Skip HTML comments (possibly multi-line)
        if in_comment:
            if "-->" in line_stripped:
                in_comment = False
            continue
        if line_stripped.startswith("<!--"):
            in_comment = "-->" not in line_stripped
            continue

        if not line_stripped:
            continue

        # ## Label
        if line_stripped.startswith("## "):
            current_label = line_stripped[3:].strip()
            if current_label not in keywords_by_label:
                order.append(current_label)
                keywords_by_label[current_label] = []
            continue

        # Any other heading ends the current rule
        if line_stripped.startswith("#"):
            current_label = None
            continue

        bullet = re.match(r"^[-*]\s+(.+)$", line_stripped)
        if bullet and current_label is not None:
            keyword = _clean_keyword(bullet.group(1))
            if keyword and keyword.lower() not in keywords_by_label[current_label]:
                keywords_by_label[current_label].append(keyword.lower())

    return tuple(
        CategoryRule(label, tuple(keywords_by_label[label]))
        for label in order
        if keywords_by_label[label]
    )


def load_rules(path: Optional[str] = None) -> Tuple[CategoryRule, ...]:
    """
    Load the rule table once at startup.

    Resolution order: explicit path, patterns/category-rules.md, built-in table.
    """
    candidate = Path(path) if path else PATTERNS_DIR / "category-rules.md"

    if not candidate.exists():
        logger.warning("Category rules not found at %s, using built-in rules", candidate)
        return DEFAULT_RULES

    rules = parse_category_rules(str(candidate))
    if not rules:
        logger.warning("No category rules parsed from %s, using built-in rules", candidate)
        return DEFAULT_RULES

    logger.info("Loaded %d category rules from %s", len(rules), candidate)
    return rules
