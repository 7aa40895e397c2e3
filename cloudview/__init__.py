"""CloudView - cloud resource inventory aggregator."""

__version__ = '0.1.0'
