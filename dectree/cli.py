from typing import Optional

import typer
from pydantic import ValidationError

from .config import TreeConfig
from .dataset import load_dataset
from .logger import setup_logger
from .tree import PixelDecisionTree
from .util import count_correct, print_tree_structure

app = typer.Typer(help="Pixel Decision Tree Classifier")

logger = setup_logger(__name__)


def _load_config(config_file, width, threshold_ratio):
    """Read the optional config file and apply command line overrides."""
    try:
        if config_file is not None:
            config = TreeConfig.from_file(config_file)
        else:
            config = TreeConfig()

        overrides = {}
        if width is not None:
            overrides["width"] = width
        if threshold_ratio is not None:
            overrides["threshold_ratio"] = threshold_ratio
        if overrides:
            config = TreeConfig.model_validate({**config.model_dump(), **overrides})
    except (ValidationError, ValueError, OSError) as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    return config


@app.command()
def evaluate(
    training_data: str = typer.Argument(
        ..., help="Binary file with training images and labels"
    ),
    testing_data: str = typer.Argument(
        ..., help="Binary file with testing images and labels"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Tree configuration file (YAML/JSON)"
    ),
    width: Optional[int] = typer.Option(None, help="Image side length"),
    threshold_ratio: Optional[float] = typer.Option(
        None, help="Majority-label ratio at which a node becomes a leaf"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log every node"),
):
    """
    Build a tree on the training set and print how many test images it classifies correctly.
    """
    config = _load_config(config_file, width, threshold_ratio)

    try:
        training = load_dataset(training_data, width=config.width,
                                num_classes=config.num_classes)
        testing = load_dataset(testing_data, width=config.width,
                               num_classes=config.num_classes)

        model = PixelDecisionTree.from_config(config, verbose=int(verbose))
        model.fit(training)
        total_correct = count_correct(model, testing)
        model.release()
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    logger.info(f"{total_correct}/{testing.num_items} test images classified correctly")
    typer.echo(total_correct)


@app.command()
def describe(
    training_data: str = typer.Argument(
        ..., help="Binary file with training images and labels"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Tree configuration file (YAML/JSON)"
    ),
    width: Optional[int] = typer.Option(None, help="Image side length"),
    threshold_ratio: Optional[float] = typer.Option(
        None, help="Majority-label ratio at which a node becomes a leaf"
    ),
):
    """
    Build a tree on the training set and print its structure.
    """
    config = _load_config(config_file, width, threshold_ratio)

    try:
        training = load_dataset(training_data, width=config.width,
                                num_classes=config.num_classes)
        model = PixelDecisionTree.from_config(config).fit(training)
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    typer.echo(f"Depth: {model.get_depth()}")
    typer.echo(f"Leaves: {model.count_leaves()}")
    print_tree_structure(model)


if __name__ == "__main__":
    app()
