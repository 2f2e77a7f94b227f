"""
lamcheck Rendering
===================

Components:
    - report.py:      Console progress and result report
    - certificate.py: Sealed verification certificate builder
"""
