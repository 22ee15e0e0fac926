"""QualiBot visual-testing action for pull requests."""

__version__ = "1.0.0"
