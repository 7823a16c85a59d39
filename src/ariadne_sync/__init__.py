"""ariadne-sync: incremental two-way sync of a job-search tracker with Notion."""

__version__ = "0.4.0"
