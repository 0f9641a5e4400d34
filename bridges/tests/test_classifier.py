"""
Tests for Category Classifier

Tests first-match-wins keyword classification over an ordered rule table.
"""

import pytest


class TestClassify:
    """Tests for classify()"""

    def test_matches_default_rule(self):
        from bridges.archive.classifier import classify

        assert classify("Let's deploy the new feature tonight") == "Development"
        assert classify("NetSuite sync is broken again") == "NetSuite/P21"
        assert classify("Booked the flight to Vegas") == "Vegas/MGM"

    def test_case_insensitive(self):
        from bridges.archive.classifier import classify

        assert classify("GITHUB ACTIONS FAILED") == "Development"
        assert classify("Uploaded via ShareX") == "Tools"

    def test_earlier_rule_wins(self):
        from bridges.archive.classifier import classify
        from bridges.archive.rule_parser import rules_from_pairs

        rules = rules_from_pairs([("A", ["x"]), ("B", ["x", "y"])])

        assert classify("x y", rules) == "A"
        assert classify("just y", rules) == "B"

    def test_default_table_order_decides_overlap(self):
        from bridges.archive.classifier import classify

        # "integration" (NetSuite/P21) precedes "meeting" (Business)
        assert classify("meeting about the integration") == "NetSuite/P21"

    def test_uncategorized_when_nothing_matches(self):
        from bridges.archive.classifier import classify, UNCATEGORIZED

        assert classify("good morning everyone") == UNCATEGORIZED
        assert UNCATEGORIZED == "Uncategorized"

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text_is_uncategorized(self, text):
        from bridges.archive.classifier import classify

        assert classify(text) == "Uncategorized"

    def test_substring_match(self):
        from bridges.archive.classifier import classify

        # "bug" inside "debugging"
        assert classify("debugging session") == "Development"

    def test_deterministic(self):
        from bridges.archive.classifier import classify

        text = "server setup for the family vacation"
        results = {classify(text) for _ in range(10)}
        assert results == {"Family"}

    def test_empty_rule_table(self):
        from bridges.archive.classifier import classify

        assert classify("deploy", ()) == "Uncategorized"


class TestClassifyAll:
    """Tests for classify_all()"""

    def test_distinct_labels_in_first_seen_order(self):
        from bridges.archive.classifier import classify_all

        labels = classify_all(["fix the bug", "hello", "code review", "budget planning"])

        assert labels == ["Development", "Uncategorized", "Business"]

    def test_empty_input(self):
        from bridges.archive.classifier import classify_all

        assert classify_all([]) == []
