import numpy as np
from typer.testing import CliRunner

from dectree.cli import app

runner = CliRunner()


def last_line(result):
    return result.output.strip().splitlines()[-1]


def test_evaluate_prints_correct_count(write_dataset, black_white_images):
    images, labels = black_white_images
    train = write_dataset(images, labels, name="train.bin")
    test = write_dataset(
        np.stack([np.zeros((28, 28)), np.full((28, 28), 255), np.full((28, 28), 255)]),
        [0, 1, 0],
        name="test.bin",
    )

    result = runner.invoke(app, ["evaluate", str(train), str(test)])

    assert result.exit_code == 0, result.output
    assert last_line(result) == "2"


def test_evaluate_with_config_and_overrides(write_dataset, tmp_path):
    images = np.array([[[0, 0], [0, 255]], [[0, 0], [0, 0]]], dtype=np.uint8)
    train = write_dataset(images, [3, 5], name="train.bin")

    config = tmp_path / "tree.yaml"
    config.write_text("width: 2\nthreshold_ratio: 0.9\n")

    result = runner.invoke(app, ["evaluate", str(train), str(train), "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert last_line(result) == "2"

    # A ratio of 0.5 makes the root a leaf predicting label 3
    result = runner.invoke(app, ["evaluate", str(train), str(train), "--config",
                                 str(config), "--threshold-ratio", "0.5"])
    assert result.exit_code == 0, result.output
    assert last_line(result) == "1"


def test_evaluate_missing_file_exits_with_error(tmp_path):
    result = runner.invoke(app, ["evaluate", str(tmp_path / "a.bin"), str(tmp_path / "b.bin")])
    assert result.exit_code == 1


def test_evaluate_wrong_width_exits_with_error(write_dataset, black_white_images):
    images, labels = black_white_images
    train = write_dataset(images, labels)
    result = runner.invoke(app, ["evaluate", str(train), str(train), "--width", "4"])
    assert result.exit_code == 1


def test_invalid_override_exits_with_error(write_dataset, black_white_images):
    images, labels = black_white_images
    train = write_dataset(images, labels)
    result = runner.invoke(app, ["evaluate", str(train), str(train),
                                 "--threshold-ratio", "2"])
    assert result.exit_code == 1


def test_describe(write_dataset, black_white_images):
    images, labels = black_white_images
    train = write_dataset(images, labels)

    result = runner.invoke(app, ["describe", str(train)])

    assert result.exit_code == 0, result.output
    assert "Depth: 1" in result.output
    assert "Leaves: 2" in result.output
    assert "Split on pixel 0 (0, 0) == 0" in result.output
