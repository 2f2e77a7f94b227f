"""
lamcheck Retrieval
===================

Components:
    - context.py: Same query under two passage kinds, side by side
"""
