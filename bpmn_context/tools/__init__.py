"""
BPMN Context Tools

Command-line entry points.
"""

from bpmn_context.tools.cli import cli

__all__ = ["cli"]
