"""Business logic services.

Services contain all ranking, session and caching logic and are called by
routes and background workers. They take the store (and clock) explicitly.
"""
