"""
CRMFlow - HubSpot campaign list builder and email cloner
"""

__version__ = "1.0.0"
__author__ = "CRMFlow Team"

from .core.hubspot_client import HubSpotClient

__all__ = [
    "HubSpotClient",
]
