"""Runner layer for the command line.

This module provides the command-line entry point and startup utilities.
"""

from .startup import (
    print_configuration,
    load_requirements,
    read_plan_file,
)
from .cli import main, print_plan, print_summary

__all__ = [
    "print_configuration",
    "load_requirements",
    "read_plan_file",
    "main",
    "print_plan",
    "print_summary",
]
