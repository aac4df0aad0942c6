"""Command line interfaces for fib-bench."""

from .fib_cli import main

__all__ = ["main"]
