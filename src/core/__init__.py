"""
Core domain models, amount primitives, and data contracts.

This module contains the foundational building blocks that are independent
of the payment channel and the hosting environment.
"""
