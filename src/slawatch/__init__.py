"""
slawatch
========

Background SLA breach detection and notification for service-desk tickets.
"""

__version__ = "1.0.0"
