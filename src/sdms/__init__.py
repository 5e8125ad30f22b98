"""SDMS - Credential and session authority.

Password and external-provider login, role resolution from profile linkage,
signed bearer tokens and password reset for the startup management system.
"""

__version__ = "0.1.0"
