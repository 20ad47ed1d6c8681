"""CIS submission gateway package.

HTTP orchestration for Construction Industry Scheme monthly nil returns:
request validation, upstream delegation, response rendering and audit.
"""

from __future__ import annotations

__all__ = []
