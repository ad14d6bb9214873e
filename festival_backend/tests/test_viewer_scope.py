"""
Viewer scope matching tests.
"""

import itertools

import pytest

from festival_backend.db.models import Bureau, InquiryViewer, ViewerScope
from festival_backend.viewer_scope import matches


def _all():
    return InquiryViewer(scope=ViewerScope.ALL)


def _bureau(bureau):
    return InquiryViewer(scope=ViewerScope.BUREAU, bureau_value=bureau)


def _individual(user_id):
    return InquiryViewer(scope=ViewerScope.INDIVIDUAL, user_id=user_id)


def test_empty_rule_set_matches_nobody():
    assert matches([], "u1", Bureau.FINANCE) is False


@pytest.mark.parametrize("bureau", list(Bureau) + [None])
def test_all_rule_matches_everyone_in_any_position(bureau):
    others = [_bureau(Bureau.PLANNING), _individual("someone-else")]
    for position in range(len(others) + 1):
        rules = others[:position] + [_all()] + others[position:]
        assert matches(rules, "u1", bureau) is True


def test_all_rule_order_does_not_matter():
    rules = [_bureau(Bureau.PLANNING), _individual("x"), _all()]
    for perm in itertools.permutations(rules):
        assert matches(list(perm), "u1", Bureau.FINANCE) is True


def test_bureau_rule_matches_only_that_bureau():
    rules = [_bureau(Bureau.FINANCE)]
    assert matches(rules, "u1", Bureau.FINANCE) is True
    assert matches(rules, "u1", Bureau.PLANNING) is False
    assert matches(rules, "u1", None) is False


def test_individual_rule_matches_only_that_user():
    rules = [_individual("u1")]
    assert matches(rules, "u1", Bureau.PLANNING) is True
    assert matches(rules, "u2", Bureau.PLANNING) is False


def test_first_matching_rule_wins_without_scanning_rest():
    class Exploding:
        @property
        def scope(self):
            raise AssertionError("rule after a match was inspected")

    rules = [_individual("u1"), Exploding()]
    assert matches(rules, "u1", None) is True
