"""ERPlay - ER diagram quiz practice and supervision backend"""

__version__ = "1.0.0"
