"""
kafcat CLI.

Commands:
- kafcat consume: Print messages of a topic partition
- kafcat produce: Send stdin lines to a topic
- kafcat copy: Copy messages between topics
- kafcat watermarks: Show low/high watermarks
- kafcat create-topic: Create a topic
- kafcat version: Show version
"""

from kafcat.cli.main import cli, main

__all__ = ["cli", "main"]
