"""
content-history - commit-history provenance and push policy for content repositories.

Replays a git history to find who created and last edited every path, and
guards published branches with a pre-receive hook.
"""

__version__ = "0.3.0"
