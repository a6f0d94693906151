"""
Role Enumeration Module
=======================

Defines the roles the identity provider hands to the case service.

Access decisions based on these roles happen upstream; the case service
only reads them to find supervisors for new-case notifications.
"""

from enum import Enum


class Role(str, Enum):
    """
    System-wide roles.
    """

    EMPLOYEE = "EMPLOYEE"
    SUPERVISOR = "SUPERVISOR"
    MANAGER = "MANAGER"
    SYSTEM_ADMINISTRATOR = "SYSTEM_ADMINISTRATOR"
    OHS_PRACTITIONER = "OHS_PRACTITIONER"
    SECURITY_PRACTITIONER = "SECURITY_PRACTITIONER"
    FINANCE_OFFICIAL = "FINANCE_OFFICIAL"
