"""Open courseware pipeline: archives to ordered sections, resources, problems."""

__version__ = "0.1.0"
