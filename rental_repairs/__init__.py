"""
Rental-property maintenance requests: workflow and worker scheduling engine.
"""

__version__ = "0.1.0"
