"""Helper modules for environment-backed configuration."""

from .dotenv_loader import DotenvLoader

__all__ = ["DotenvLoader"]
