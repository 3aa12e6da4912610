"""Tests for IntSet."""

from calrecur.intset import IntSet, uniquify


def test_intset_sorts_and_deduplicates():
    s = IntSet()
    for v in (17, 0, 0, -24, -12, 4):
        s.add(v)
    assert s.to_tuple() == (-24, -12, 0, 4, 17)
    assert len(s) == 5
    assert list(s) == [-24, -12, 0, 4, 17]


def test_intset_membership():
    s = IntSet([3, -1])
    assert 3 in s
    assert -1 in s
    assert 2 not in s
    assert "3" not in s


def test_uniquify():
    assert uniquify([5, 1, 5, 3]) == (1, 3, 5)
    assert uniquify([]) == ()
