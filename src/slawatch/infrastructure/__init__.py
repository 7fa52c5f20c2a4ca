"""
Infrastructure
==============

Cross-module technical infrastructure:
- Database engine and session factory
"""
