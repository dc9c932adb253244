"""quickapply: automated submission of quick-apply job application wizards."""

__version__ = "0.1.0"
