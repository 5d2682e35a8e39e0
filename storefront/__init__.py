"""
                FoodFusion Storefront

Food-ordering storefront backend: restaurant catalog, single-restaurant
carts, checkout and simulated order tracking, with swappable in-memory
and relational storage.

Author: Your Name
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Your Name"
