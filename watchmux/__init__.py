"""
watchmux: run several commands in parallel and multiplex their output.
"""

__version__ = "0.1.0"
