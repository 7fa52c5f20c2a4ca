"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context
(SLA Tracking and Notifications).

DO NOT add business logic from SLA or Notifications to shared kernel.
"""
