"""The Connection: community platform API with a personalised feed ranker."""

__version__ = "1.0.0"
