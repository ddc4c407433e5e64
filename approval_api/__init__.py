"""
HTTP surface of the approval engine.

``create_app`` builds a FastAPI application over a session factory and an
org directory.  Routes live under ``/approvals``; the caller's identity is
taken from the ``X-Actor-Id`` header set by the upstream auth layer.
"""

from approval_api.app import create_app

__all__ = ["create_app"]
