"""
Title tags for multiplexed lines.

A tag is `[ <title> ]` painted on a fixed 256-color background.
"""

from __future__ import annotations


RESET = "\x1b[0m"


def paint_title(title: str, color: int) -> str:
    """Render `[ title ]` on the given ANSI 256-color background."""
    return f"\x1b[48;5;{color}m[ {title} ]{RESET}"


def format_line(title: str, color: int, text: str) -> str:
    """Build one complete output line: tag, space, text, newline."""
    return f"{paint_title(title, color)} {text}\n"
