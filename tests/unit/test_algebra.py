"""
Unit tests for union and intersection estimates.
"""

from hllstore.sketches import HashAssigner, RegisterArray, estimate
from hllstore.sketches.algebra import intersection_estimate, union_estimate
from hllstore.sketches.registers import merge_all


def sketch_of(values):
    assigner = HashAssigner()
    registers = RegisterArray.empty()
    for value in values:
        registers.update(*assigner.assign(value))
    return registers


class TestUnion:
    """Tests for union_estimate."""

    def test_no_arrays(self):
        """Test that nothing found counts 0."""
        assert union_estimate([]) == 0

    def test_single_array(self):
        """Test that a single array is its own estimate."""
        a = sketch_of(str(i) for i in range(300))
        assert union_estimate([a]) == estimate(a)

    def test_overlapping(self):
        """Test union of overlapping sets."""
        a = sketch_of(str(i) for i in range(251, 1000))
        b = sketch_of(str(i) for i in range(0, 500))
        assert abs(union_estimate([a, b]) - 1000) <= 60

    def test_duplicate_array_is_idempotent(self):
        """Test that repeating an array does not change the union."""
        a = sketch_of(str(i) for i in range(300))
        assert union_estimate([a, a, a]) == estimate(a)


class TestIntersection:
    """Tests for intersection_estimate."""

    def test_no_arrays(self):
        """Test that nothing found counts exactly 0."""
        assert intersection_estimate([], requested=2) == 0

    def test_missing_array(self):
        """Test that fewer arrays than requested counts exactly 0."""
        a = sketch_of(str(i) for i in range(300))
        assert intersection_estimate([a], requested=2) == 0

    def test_two_sets_inclusion_exclusion(self):
        """Test |A| + |B| - |A u B| for two sets."""
        a = sketch_of(str(i) for i in range(251, 1000))
        b = sketch_of(str(i) for i in range(0, 500))

        expected = abs(estimate(merge_all([a, b])) - (estimate(a) + estimate(b)))
        result = intersection_estimate([a, b], requested=2)

        assert result == expected
        assert abs(result - 250) <= 60

    def test_identical_sets(self):
        """Test that A n A estimates |A|."""
        a = sketch_of(str(i) for i in range(300))
        assert intersection_estimate([a, a.copy()], requested=2) == estimate(a)

    def test_three_sets_keeps_two_set_formula(self):
        """
        Test that three or more arrays use abs(union - sum) unchanged.

        For three identical sets the true intersection is |A|, but the
        formula gives |A| - 3|A| in absolute value, i.e. 2|A|.
        """
        a = sketch_of(str(i) for i in range(300))
        result = intersection_estimate([a, a.copy(), a.copy()], requested=3)
        assert result == 2 * estimate(a)

    def test_three_disjoint_sets(self):
        """Test the formula on three disjoint sets (union ~ sum, so ~0)."""
        arrays = [
            sketch_of(f"{prefix}{i}" for i in range(200))
            for prefix in ("a", "b", "c")
        ]
        union = estimate(merge_all(arrays))
        total = sum(estimate(arr) for arr in arrays)
        result = intersection_estimate(arrays, requested=3)

        assert result == abs(union - total)
        assert result <= 20
