"""
lamcheck HTTP Client
=====================

Deadline token and single-shot timed HTTP requests.

Components:
    - deadline.py: Monotonic deadline / cancellation token
    - http.py:     TimedRequester and the normalized HttpOutcome
"""
