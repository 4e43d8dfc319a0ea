# src/blogchain/runtime/apply/__init__.py
"""Domain-specific apply modules.

Each module holds the service operations for one slice of the blog state and
the tx handlers that validate an envelope and call them. domain_dispatch
routes an envelope to the first module whose apply_* claims it.
"""

from __future__ import annotations

__all__ = [
    "posts",
    "comments",
    "profiles",
]
