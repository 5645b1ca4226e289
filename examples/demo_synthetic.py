"""
Quick demo of Pixel Decision Trees on synthetic binary images.

This script demonstrates:
1. Creating synthetic stroke images for ten classes
2. Writing and reading them in the binary dataset format
3. Training a single pixel decision tree
4. Comparing train and test accuracy for several threshold ratios
"""

import sys
import tempfile
from pathlib import Path

import numpy as np

sys.path.append(str(Path(__file__).resolve().parents[1]))

from dectree import (
    Dataset,
    PixelDecisionTree,
    accuracy,
    load_dataset,
    print_tree_structure,
    save_dataset
)


def generate_synthetic_data(n_samples=500, width=12, noise_level=0.05, seed=42):
    """
    Generate synthetic binary images with known structure.

    Each class owns a fixed bar (a row or a column) that is drawn bright;
    a fraction ``noise_level`` of all pixels is then flipped.
    """
    print("Generating synthetic data...")
    print(f"  Shape: ({n_samples}, {width}, {width})")

    rng = np.random.default_rng(seed)
    y = rng.integers(0, 10, size=n_samples)
    X = np.zeros((n_samples, width, width), dtype=np.uint8)

    for i, label in enumerate(y):
        pos = 1 + (label // 2) * 2
        if label % 2 == 0:
            X[i, pos, :] = 255
        else:
            X[i, :, pos] = 255

    flips = rng.random(X.shape) < noise_level
    X[flips] = 255 - X[flips]

    print(f"  Class counts: {np.bincount(y, minlength=10).tolist()}")
    print()

    return X, y


def train_single_tree(train, test, threshold_ratio):
    """Train and evaluate a single pixel decision tree."""
    print("=" * 60)
    print(f"PIXEL DECISION TREE (threshold_ratio={threshold_ratio})")
    print("=" * 60)

    tree = PixelDecisionTree(threshold_ratio=threshold_ratio)

    print("Training tree...")
    tree.fit(train)

    print(f"  Tree depth: {tree.get_depth()}")
    print(f"  Number of leaves: {tree.count_leaves()}")
    print()

    print("Performance:")
    print(f"  Train accuracy: {accuracy(tree, train):.4f}")
    print(f"  Test accuracy:  {accuracy(tree, test):.4f}")
    print()

    return tree


def main():
    """Run the full demonstration."""
    print("\n" + "=" * 60)
    print("PIXEL DECISION TREE DEMO")
    print("=" * 60)
    print()

    width = 12
    X, y = generate_synthetic_data(n_samples=500, width=width)

    # Train/test split
    n_train = int(0.7 * len(X))

    # Go through the file format the command line tool reads
    with tempfile.TemporaryDirectory() as tmp:
        train_path = Path(tmp) / "train.bin"
        test_path = Path(tmp) / "test.bin"
        save_dataset(Dataset(X[:n_train], y[:n_train], width=width), train_path)
        save_dataset(Dataset(X[n_train:], y[n_train:], width=width), test_path)

        train = load_dataset(train_path, width=width)
        test = load_dataset(test_path, width=width)

    print(f"Train set: {train.num_items} samples")
    print(f"Test set:  {test.num_items} samples")
    print()

    for threshold_ratio in (0.8, 0.95, 1.0):
        tree = train_single_tree(train, test, threshold_ratio)

    print("Structure of the last tree:")
    print_tree_structure(tree)
    print()

    print("=" * 60)
    print("DEMO COMPLETE!")
    print("=" * 60)


if __name__ == "__main__":
    main()
