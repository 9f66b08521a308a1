"""
Coffee Sales Analytics

Fact store, incrementally maintained product sales mart, and reports over
coffee bean orders.
"""

__version__ = "1.0.0"
