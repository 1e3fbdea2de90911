"""cadence - recurring "Hello World" jobs with a reconciling scheduling engine."""

__version__ = "0.1.0"
