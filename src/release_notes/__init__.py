"""Release Notes Service.

Keeps an in-process cache of a project's GitHub release notes, filled on
demand from the GitHub releases API and kept current by release webhooks.
"""

__version__ = "0.1.0"
