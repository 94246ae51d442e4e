"""solrange: value-range abstract interpretation for smart contracts"""

__version__ = "0.1.0"
