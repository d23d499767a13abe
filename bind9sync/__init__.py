"""
bind9sync - reconcile Proxmox VM addresses into BIND A records.
"""

__version__ = "0.1.0"
