"""skilluse - install agent skills from GitHub repositories."""

__version__ = "0.4.0"
