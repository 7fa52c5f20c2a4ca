"""
Notifications Module
====================

Bounded Context for rendering and dispatching notifications.

Responsibilities:
- Load templates by kind (email / teams) and name
- Substitute `{{ placeholder }}` values
- Hand rendered payloads to a delivery channel and report success
"""
