"""
Approval Kernel

Policy and state-machine core of the workforce approval workflow:
- Versioned tenant-wide approval settings (Policy Store)
- Delegation of approval authority with scope and duration rules
- Request lifecycle with optimistic concurrency on every mutation
- Append-only decision history
- Notification dispatch to an external notifier
"""

__version__ = "0.1.0"
