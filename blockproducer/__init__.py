"""
blockproducer - Engine API block production client
"""

__version__ = "0.1.0"
__logo__ = "⛏"
