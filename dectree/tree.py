"""
Pixel decision tree for small grayscale images.

This module grows a binary classification tree by greedy recursive
partitioning. At every node each pixel is tried as a split test (dark vs.
bright at a fixed midpoint) and the one with the lowest weighted Gini
impurity wins. Recursion stops once the majority label of a node is pure
enough. Nodes refer to dataset members by index, pixels are never copied.
"""

import logging
from contextlib import nullcontext

import numpy as np

from .config import NUM_CLASSES, SPLIT_VALUE, THRESHOLD_RATIO
from .dataset import Dataset, Image
from .logger import log_level, setup_logger

logger = setup_logger(__name__)


class Node:
    """Tree node for pixel decision tree."""

    def is_leaf(self):
        raise NotImplementedError

    def get_leaves(self):
        """Get all leaf nodes in subtree, left to right."""
        leaves = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                leaves.append(node)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return leaves


class LeafNode(Node):
    """
    Terminal node holding a predicted label.

    Parameters
    ----------
    classification : int
        Majority label of the training members that reached this node
    freq : int, optional
        How many of those members carry ``classification``
    n_samples : int, optional
        How many training members reached this node
    """

    def __init__(self, classification, freq=None, n_samples=None):
        self.classification = classification
        self.freq = freq
        self.n_samples = n_samples

    def is_leaf(self):
        return True

    @property
    def purity(self):
        """Share of the node's training members carrying the majority label."""
        if not self.n_samples:
            return None
        return self.freq / self.n_samples

    def __repr__(self):
        return f"LeafNode(classification={self.classification})"


class InternalNode(Node):
    """
    Split node: members darker than the split value at ``pixel`` go left.

    Parameters
    ----------
    pixel : int
        Flat pixel index tested by this node
    left, right : Node
        Subtrees for dark and bright intensities
    impurity : float, optional
        Weighted Gini impurity of the split at construction time
    n_samples : int, optional
        How many training members reached this node
    """

    def __init__(self, pixel, left, right, impurity=None, n_samples=None):
        if left is None or right is None:
            raise ValueError("An internal node needs two children")
        self.pixel = pixel
        self.left = left
        self.right = right
        self.impurity = impurity
        self.n_samples = n_samples

    def is_leaf(self):
        return False

    def __repr__(self):
        return f"InternalNode(pixel={self.pixel})"


def _as_subset(dataset, subset):
    """Validate an index subset and return it as an integer array."""
    subset = np.asarray(subset, dtype=np.intp).reshape(-1)
    if subset.size == 0:
        raise ValueError("subset must contain at least one index")
    if subset.min() < 0 or subset.max() >= dataset.num_items:
        raise IndexError(f"subset indices must lie in [0, {dataset.num_items})")
    if np.unique(subset).size != subset.size:
        raise ValueError("subset indices must be distinct")
    return subset


def _check_pixel(dataset, pixel):
    if not 0 <= pixel < dataset.num_pixels:
        raise IndexError(f"pixel {pixel} outside [0, {dataset.num_pixels})")


def _gini_impurity(values, labels, split_value, num_classes):
    """Weighted Gini impurity of splitting ``labels`` on ``values < split_value``."""
    in_a = values < split_value
    a_count = int(np.count_nonzero(in_a))
    b_count = labels.size - a_count

    # Constant pixel over the subset: one group is empty, score undefined
    if a_count == 0 or b_count == 0:
        return None

    a_freq = np.bincount(labels[in_a], minlength=num_classes)
    b_freq = np.bincount(labels[~in_a], minlength=num_classes)
    a_gini = 1.0 - np.sum((a_freq / a_count) ** 2)
    b_gini = 1.0 - np.sum((b_freq / b_count) ** 2)

    return float((a_gini * a_count + b_gini * b_count) / labels.size)


def gini_impurity(dataset, subset, pixel, split_value=SPLIT_VALUE, num_classes=None):
    """
    Score how well ``pixel`` separates ``subset`` into label-homogeneous groups.

    Members with an intensity below ``split_value`` form group A, the rest
    group B. The score is the size-weighted mean of the Gini impurities
    ``1 - sum(p_c ** 2)`` of both groups.

    Parameters
    ----------
    dataset : Dataset
        Dataset the indices refer to
    subset : array-like of int
        Non-empty index subset
    pixel : int
        Flat pixel index

    Returns
    -------
    impurity : float or None
        Score in [0, 1], or None when one of the groups is empty
    """
    subset = _as_subset(dataset, subset)
    _check_pixel(dataset, pixel)
    if num_classes is None:
        num_classes = dataset.num_classes
    return _gini_impurity(dataset.images[subset, pixel], dataset.labels[subset],
                          split_value, num_classes)


def most_frequent(dataset, subset, num_classes=None):
    """
    Most frequent label of ``subset`` and its count.

    Ties go to the smallest label.
    """
    subset = _as_subset(dataset, subset)
    if num_classes is None:
        num_classes = dataset.num_classes
    counts = np.bincount(dataset.labels[subset], minlength=num_classes)
    label = int(np.argmax(counts))
    return label, int(counts[label])


def _best_split(dataset, subset, split_value, num_classes):
    labels = dataset.labels[subset]

    best_impurity = np.inf
    best_pixel = None

    # Ascending scan with strict comparison keeps the smallest pixel on ties
    for pixel in range(dataset.num_pixels):
        impurity = _gini_impurity(dataset.images[subset, pixel], labels,
                                  split_value, num_classes)
        if impurity is None:
            continue
        if impurity < best_impurity:
            best_impurity = impurity
            best_pixel = pixel

    return best_pixel, best_impurity


def best_split(dataset, subset, split_value=SPLIT_VALUE, num_classes=None):
    """
    Pixel with the lowest Gini impurity over ``subset``.

    Pixels whose impurity is undefined are skipped. Among equally good
    pixels the smallest index wins.

    Returns
    -------
    pixel : int or None
        Winning pixel, or None if no pixel splits the subset in two
    """
    subset = _as_subset(dataset, subset)
    if num_classes is None:
        num_classes = dataset.num_classes
    pixel, _ = _best_split(dataset, subset, split_value, num_classes)
    return pixel


def partition(dataset, subset, pixel, split_value=SPLIT_VALUE):
    """
    Split ``subset`` into members darker and not darker than ``split_value``.

    Both halves keep the relative order of ``subset``.

    Returns
    -------
    left, right : ndarray of int
        Indices with intensity below ``split_value`` at ``pixel``, and the rest
    """
    subset = _as_subset(dataset, subset)
    _check_pixel(dataset, pixel)
    in_left = dataset.images[subset, pixel] < split_value
    return subset[in_left], subset[~in_left]


class PixelDecisionTree:
    """
    Decision tree classifier over the pixels of square grayscale images.

    Parameters
    ----------
    threshold_ratio : float, default=0.95
        A node becomes a leaf once its most frequent label makes up at least
        this fraction of its members
    split_value : int, default=128
        Intensities below this value are partitioned to the left child
    num_classes : int, default=10
        Number of distinct labels
    verbose : int, default=0
        Verbosity level; above 0 every node decision is logged

    Attributes
    ----------
    root : Node
        Root node of the tree
    width : int
        Side length of the images the tree was fitted on
    """

    def __init__(self, threshold_ratio=THRESHOLD_RATIO, split_value=SPLIT_VALUE,
                 num_classes=NUM_CLASSES, verbose=0):
        if not 0 < threshold_ratio <= 1:
            raise ValueError("threshold_ratio must be in (0, 1]")

        self.threshold_ratio = threshold_ratio
        self.split_value = split_value
        self.num_classes = num_classes
        self.verbose = verbose

        self.root = None
        self.width = None

    @classmethod
    def from_config(cls, config, verbose=0):
        """Create an unfitted tree from a ``TreeConfig``."""
        return cls(threshold_ratio=config.threshold_ratio,
                   split_value=config.split_value,
                   num_classes=config.num_classes,
                   verbose=verbose)

    def fit(self, X, y=None):
        """
        Build the decision tree.

        Parameters
        ----------
        X : Dataset or ndarray of shape (n_samples, width, width)
            Training images; flattened (n_samples, width * width) also works
        y : ndarray of shape (n_samples,), optional
            Labels, required unless ``X`` is a Dataset

        Returns
        -------
        self : PixelDecisionTree
        """
        dataset = self._as_dataset(X, y)
        if dataset.num_items == 0:
            raise ValueError("Cannot build a tree from an empty dataset")

        verbosity = log_level(logging.DEBUG) if self.verbose > 0 else nullcontext()
        with verbosity:
            self.width = dataset.width
            self.root = self._build_tree(dataset, dataset.indices())

        logger.info(
            f"Built tree from {dataset.num_items} images: "
            f"depth {self.get_depth()}, {self.count_leaves()} leaves"
        )
        return self

    def predict(self, X):
        """
        Predict labels.

        Parameters
        ----------
        X : Dataset or ndarray of shape (n_samples, width, width)
            Images to classify

        Returns
        -------
        predictions : ndarray of shape (n_samples,)
        """
        self._check_fitted()
        if isinstance(X, Dataset):
            X = X.images
        X = np.asarray(X)
        return np.array([_traverse_tree(x.reshape(-1), self.root) for x in X],
                        dtype=np.int64)

    def classify(self, image):
        """Predict the label of a single image."""
        self._check_fitted()
        return classify(self.root, image)

    def release(self):
        """Detach every node of the tree; returns the number released."""
        if self.root is None:
            return 0
        released = release_tree(self.root)
        self.root = None
        return released

    def get_depth(self):
        """Get maximum depth of the tree."""
        if self.root is None:
            return 0
        return get_depth(self.root)

    def count_leaves(self):
        """Count number of leaf nodes."""
        if self.root is None:
            return 0
        return count_leaves(self.root)

    def _as_dataset(self, X, y):
        if isinstance(X, Dataset):
            if y is not None:
                raise ValueError("y must not be given together with a Dataset")
            return X

        if y is None:
            raise ValueError("y is required when X is an array")

        X = np.asarray(X)
        if X.ndim == 3:
            if X.shape[1] != X.shape[2]:
                raise ValueError("Images must be square")
            width = X.shape[1]
        elif X.ndim == 2:
            width = int(round(np.sqrt(X.shape[1])))
            if width * width != X.shape[1]:
                raise ValueError("Flattened images must have a square pixel count")
        else:
            raise ValueError("X must be 2D or 3D")

        return Dataset(X, y, width=width, num_classes=self.num_classes)

    def _check_fitted(self):
        if self.root is None:
            raise ValueError("Tree must be fitted before prediction")

    def _grow(self, dataset, subset, depth):
        """Decide one node: a LeafNode, or the split to apply to ``subset``."""
        label, freq = most_frequent(dataset, subset, self.num_classes)
        n_samples = subset.size

        # Stopping criterion
        if freq / n_samples >= self.threshold_ratio:
            logger.debug(f"depth {depth}: leaf {label} ({freq}/{n_samples})")
            return LeafNode(label, freq, n_samples)

        pixel, impurity = _best_split(dataset, subset, self.split_value,
                                      self.num_classes)

        # Identical images with different labels, nothing left to split on
        if pixel is None:
            logger.debug(
                f"depth {depth}: no pixel splits {n_samples} images, "
                f"leaf {label} ({freq}/{n_samples})"
            )
            return LeafNode(label, freq, n_samples)

        left_idx, right_idx = partition(dataset, subset, pixel, self.split_value)
        logger.debug(
            f"depth {depth}: split on pixel {pixel} (impurity {impurity:.4f}), "
            f"{left_idx.size} left / {right_idx.size} right"
        )
        return pixel, impurity, left_idx, right_idx

    def _build_tree(self, dataset, subset):
        """Build the tree depth first with an explicit work stack."""
        # A pixel splits at most once along any path: each child lies on one
        # side of split_value there, so its impurity is undefined in both
        # Each work item fills slot ``pos`` of the list ``slots``
        root_slot = [None]
        pending = []
        stack = [(subset, 0, root_slot, 0)]

        while stack:
            subset, depth, slots, pos = stack.pop()
            grown = self._grow(dataset, subset, depth)
            if isinstance(grown, LeafNode):
                slots[pos] = grown
                continue

            pixel, impurity, left_idx, right_idx = grown
            children = [None, None]
            pending.append((slots, pos, pixel, children, impurity, subset.size))
            stack.append((right_idx, depth + 1, children, 1))
            stack.append((left_idx, depth + 1, children, 0))

        # Splits are queued before their descendants, so the reverse order
        # sees both children of a split already built
        for slots, pos, pixel, children, impurity, n_samples in reversed(pending):
            slots[pos] = InternalNode(pixel, children[0], children[1],
                                      impurity=impurity, n_samples=n_samples)

        return root_slot[0]


def _traverse_tree(x, node):
    """Traverse tree for prediction."""
    while not node.is_leaf():
        # Only an exact zero goes left, any other intensity goes right
        node = node.left if x[node.pixel] == 0 else node.right
    return node.classification


def _image_pixels(image):
    if isinstance(image, Image):
        return image.data
    return np.asarray(image).reshape(-1)


def build_dec_tree(dataset, config=None, verbose=0):
    """
    Build a decision tree over every member of ``dataset``.

    Parameters
    ----------
    dataset : Dataset
        Training data; it is not modified
    config : TreeConfig, optional
        Induction settings; module defaults when omitted

    Returns
    -------
    root : Node
        Root of the tree, owned by the caller
    """
    if config is None:
        model = PixelDecisionTree(num_classes=dataset.num_classes, verbose=verbose)
    else:
        model = PixelDecisionTree.from_config(config, verbose=verbose)
    return model.fit(dataset).root


def classify(tree, image):
    """
    Predict the label of ``image`` by walking the tree from ``tree``.

    Parameters
    ----------
    tree : Node
        Root of a built tree
    image : Image or array-like
        Image with the dimensions the tree was built on
    """
    return _traverse_tree(_image_pixels(image), tree)


def release_tree(tree):
    """
    Detach every node below ``tree``.

    Returns
    -------
    released : int
        Number of nodes visited, ``tree`` included
    """
    released = 0
    stack = [tree]
    while stack:
        node = stack.pop()
        if not node.is_leaf():
            stack.append(node.left)
            stack.append(node.right)
            node.left = None
            node.right = None
        released += 1
    return released


def get_depth(node):
    """Number of internal nodes on the longest root-to-leaf path."""
    deepest = 0
    stack = [(node, 0)]
    while stack:
        node, depth = stack.pop()
        if node.is_leaf():
            deepest = max(deepest, depth)
        else:
            stack.append((node.left, depth + 1))
            stack.append((node.right, depth + 1))
    return deepest


def count_leaves(node):
    return len(node.get_leaves())
