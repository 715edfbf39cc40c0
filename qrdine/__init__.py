"""
                QR Dine Restaurant Ordering

Backend for QR code table ordering: customers place and track orders,
chefs move them through the kitchen and earn performance points.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
