"""
Utility functions for pixel decision trees.
"""

import numpy as np

from .tree import Node, PixelDecisionTree, classify


def _root(tree):
    if isinstance(tree, PixelDecisionTree):
        if tree.root is None:
            raise ValueError("Tree must be fitted first")
        return tree.root
    if not isinstance(tree, Node):
        raise TypeError(f"Expected a tree, got {type(tree).__name__}")
    return tree


def count_correct(tree, dataset):
    """
    Count test images whose predicted label matches their true label.

    Parameters
    ----------
    tree : PixelDecisionTree or Node
        Fitted tree
    dataset : Dataset
        Labelled images with the width the tree was built on

    Returns
    -------
    total_correct : int
    """
    root = _root(tree)
    total_correct = 0
    for i in range(dataset.num_items):
        if classify(root, dataset.images[i]) == dataset.labels[i]:
            total_correct += 1
    return total_correct


def accuracy(tree, dataset):
    """Fraction of ``dataset`` classified correctly (0.0 for an empty set)."""
    if dataset.num_items == 0:
        return 0.0
    return count_correct(tree, dataset) / dataset.num_items


def pixel_coordinates(pixel, width):
    """Row and column of a flat pixel index."""
    return tuple(int(v) for v in np.unravel_index(pixel, (width, width)))


def print_tree_structure(tree, width=None, indent="  ", file=None):
    """
    Print tree structure in readable format.

    Parameters
    ----------
    tree : PixelDecisionTree or Node
        Fitted tree
    width : int, optional
        Image width used to show pixels as (row, col); taken from a fitted
        PixelDecisionTree when omitted
    indent : str
        Indentation string
    """
    if width is None and isinstance(tree, PixelDecisionTree):
        width = tree.width

    # Work items are nodes to print or plain lines, in reverse output order
    stack = [(_root(tree), 0)]
    while stack:
        node, depth = stack.pop()
        prefix = indent * depth

        if isinstance(node, str):
            print(f"{prefix}{node}", file=file)
        elif node.is_leaf():
            if node.n_samples:
                print(f"{prefix}Leaf: class {node.classification}, "
                      f"{node.freq}/{node.n_samples} samples", file=file)
            else:
                print(f"{prefix}Leaf: class {node.classification}", file=file)
        else:
            where = f"pixel {node.pixel}"
            if width:
                where += f" {pixel_coordinates(node.pixel, width)}"
            print(f"{prefix}Split on {where} == 0", file=file)
            stack.append((node.right, depth + 1))
            stack.append(("└─ Right:", depth))
            stack.append((node.left, depth + 1))
            stack.append(("├─ Left:", depth))
