"""TurnWork: shift-rotation calendar backend."""

__version__ = "0.1.0"
