# Area: Shared
"""socket_timeout._shared — Internal helpers shared across the package."""
