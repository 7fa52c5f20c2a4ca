"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from slawatch.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ResourceNotFoundException,
    TemplateNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    DeliveryException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ResourceNotFoundException",
    "TemplateNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "DeliveryException",
]
