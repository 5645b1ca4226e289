import numpy as np
import pytest

from dectree import Dataset, best_split, gini_impurity, most_frequent, partition

GOOD = [0, 0, 255, 255]
MIXED = [0, 255, 0, 255]


def make_dataset(columns, labels, width=3):
    """Dataset whose pixel p takes the values columns[p] across the members."""
    images = np.array(columns, dtype=np.uint8).T
    return Dataset(images, labels, width=width)


@pytest.fixture
def tie_dataset():
    # Pixels 3 and 7 separate the labels perfectly, every other pixel is mixed
    columns = [GOOD if p in (3, 7) else MIXED for p in range(9)]
    return make_dataset(columns, [0, 0, 1, 1])


def test_impurity_zero_for_pure_groups(tie_dataset):
    assert gini_impurity(tie_dataset, [0, 1, 2, 3], 3) == 0.0


def test_impurity_of_mixed_groups(tie_dataset):
    assert gini_impurity(tie_dataset, [0, 1, 2, 3], 0) == pytest.approx(0.5)


def test_impurity_is_size_weighted():
    columns = [[0, 255, 255, 255]] * 4
    ds = make_dataset(columns, [0, 0, 0, 1], width=2)
    # left {0}: 0, right {0, 0, 1}: 4/9, weighted by 3/4
    assert gini_impurity(ds, [0, 1, 2, 3], 0) == pytest.approx(1 / 3)


def test_impurity_undefined_for_constant_pixel():
    ds = make_dataset([[7, 7, 7, 7]] * 4, [0, 1, 2, 3], width=2)
    assert gini_impurity(ds, [0, 1, 2, 3], 2) is None


def test_impurity_uses_midpoint():
    ds = make_dataset([[127, 128]] * 4, [0, 1], width=2)
    assert gini_impurity(ds, [0, 1], 0) == 0.0
    left, right = partition(ds, [0, 1], 0)
    assert left.tolist() == [0] and right.tolist() == [1]


def test_impurity_stays_in_unit_interval():
    rng = np.random.default_rng(3)
    images = rng.integers(0, 256, size=(40, 16), dtype=np.uint8)
    ds = Dataset(images, rng.integers(0, 10, size=40), width=4)
    subset = rng.choice(40, size=25, replace=False)
    for pixel in range(16):
        score = gini_impurity(ds, subset, pixel)
        assert score is None or 0.0 <= score <= 1.0


def test_impurity_rejects_empty_subset_and_bad_pixel(tie_dataset):
    with pytest.raises(ValueError):
        gini_impurity(tie_dataset, [], 0)
    with pytest.raises(IndexError):
        gini_impurity(tie_dataset, [0, 1], 9)
    with pytest.raises(IndexError):
        gini_impurity(tie_dataset, [0, 4], 0)


def test_most_frequent_prefers_smallest_label_on_ties():
    ds = make_dataset([[0] * 5] * 4, [3, 1, 3, 1, 5], width=2)
    assert most_frequent(ds, range(5)) == (1, 2)
    assert most_frequent(ds, [0, 2, 4]) == (3, 2)


def test_best_split_picks_smallest_of_tied_pixels(tie_dataset):
    assert best_split(tie_dataset, [0, 1, 2, 3]) == 3


def test_best_split_is_deterministic(tie_dataset):
    picks = {best_split(tie_dataset, [0, 1, 2, 3]) for _ in range(3)}
    assert picks == {3}


def test_best_split_skips_undefined_pixels():
    # Pixel 0 is constant, the others are mixed with pixel 2 the only good one
    columns = [[0, 0, 0, 0], MIXED, GOOD, MIXED]
    ds = make_dataset(columns, [0, 0, 1, 1], width=2)
    assert best_split(ds, [0, 1, 2, 3]) == 2

    columns = [[255] * 4, MIXED, MIXED, MIXED]
    ds = make_dataset(columns, [0, 0, 1, 1], width=2)
    assert best_split(ds, [0, 1, 2, 3]) == 1


def test_best_split_none_when_nothing_splits():
    ds = make_dataset([[0, 0]] * 4, [0, 1], width=2)
    assert best_split(ds, [0, 1]) is None


def test_partition_is_lossless_and_order_preserving(tie_dataset):
    subset = [3, 0, 2, 1]
    left, right = partition(tie_dataset, subset, 3)

    assert left.tolist() == [0, 1]
    assert right.tolist() == [3, 2]
    assert set(left) | set(right) == set(subset)
    assert not set(left) & set(right)


def test_partition_of_a_subset_only_touches_its_members(tie_dataset):
    left, right = partition(tie_dataset, [2, 0], 1)
    assert left.tolist() == [2, 0]
    assert right.tolist() == []


def test_duplicate_indices_are_rejected(tie_dataset):
    with pytest.raises(ValueError, match="distinct"):
        gini_impurity(tie_dataset, [0, 0, 2, 3], 3)
    with pytest.raises(ValueError, match="distinct"):
        most_frequent(tie_dataset, [2, 2, 0])
    with pytest.raises(ValueError, match="distinct"):
        partition(tie_dataset, [1, 3, 1], 3)
    with pytest.raises(ValueError, match="distinct"):
        best_split(tie_dataset, [3, 3])
