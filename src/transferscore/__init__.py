"""Transfer eligibility scoring for football players."""

__version__ = "0.1.0"
