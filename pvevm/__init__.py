"""
pvevm - cluster resource agent for Proxmox VE guests.

Makes a virtual machine or container a manageable resource for an external
cluster resource manager by translating lifecycle verbs into guest operations.
"""

__version__ = "1.1.0"
