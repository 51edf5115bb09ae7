"""Testing utilities and fakes for the foodless pipeline."""

from .fakes import (
    FakeLogger,
    create_test_image,
    create_uniform_image,
    create_split_image,
    setup_test_image_directory,
)

__all__ = [
    "FakeLogger",
    "create_test_image",
    "create_uniform_image",
    "create_split_image",
    "setup_test_image_directory",
]
