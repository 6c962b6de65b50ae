"""Building blocks of a small command shell: tokens, expansion, parsing and execution."""

__version__ = "0.1.0"