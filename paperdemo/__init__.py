"""Paper Demo Generator: academic papers to interactive demos."""

__version__ = "1.0.0"
