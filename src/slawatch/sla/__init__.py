"""
SLA Tracking Module
===================

Bounded Context for SLA breach detection and escalation.

Responsibilities:
- Poll running SLA trackers on a fixed interval
- Classify each deadline as no-SLA, OK or breached
- Transition breached trackers exactly once across concurrent pollers
- Record a ticket history entry and notify operations
- Expose tracker and poller status over HTTP
"""
