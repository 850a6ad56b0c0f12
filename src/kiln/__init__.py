"""
kiln — Dynamic template compilation engine.

Compiles generated template source into classes loaded straight into the
running interpreter.
"""

__version__ = "0.1.0"
