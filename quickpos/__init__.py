"""
QuickPos - one contract over many payment service providers.
"""
__version__ = "1.0.0"
