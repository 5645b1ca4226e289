"""
Pixel Decision Trees for Grayscale Digit Images

A small library that induces a binary decision tree from labelled square
grayscale images, splitting on single pixels by Gini impurity, and uses it
to classify unseen images.
"""

from .config import (
    NUM_CLASSES,
    NUM_PIXELS,
    SPLIT_VALUE,
    THRESHOLD_RATIO,
    WIDTH,
    TreeConfig
)
from .dataset import (
    Dataset,
    DatasetFormatError,
    Image,
    load_dataset,
    release_dataset,
    save_dataset
)
from .tree import (
    InternalNode,
    LeafNode,
    Node,
    PixelDecisionTree,
    best_split,
    build_dec_tree,
    classify,
    count_leaves,
    get_depth,
    gini_impurity,
    most_frequent,
    partition,
    release_tree
)
from .util import accuracy, count_correct, print_tree_structure

__version__ = "0.1.0"

__all__ = [
    'NUM_CLASSES',
    'NUM_PIXELS',
    'SPLIT_VALUE',
    'THRESHOLD_RATIO',
    'WIDTH',
    'TreeConfig',
    'Dataset',
    'DatasetFormatError',
    'Image',
    'load_dataset',
    'release_dataset',
    'save_dataset',
    'Node',
    'LeafNode',
    'InternalNode',
    'PixelDecisionTree',
    'best_split',
    'build_dec_tree',
    'classify',
    'count_leaves',
    'get_depth',
    'gini_impurity',
    'most_frequent',
    'partition',
    'release_tree',
    'accuracy',
    'count_correct',
    'print_tree_structure',
]
