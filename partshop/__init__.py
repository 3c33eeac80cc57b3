"""
Forklift Parts Store

Cart, checkout and order management for the spare-parts storefront.
"""

__version__ = "1.0.0"
