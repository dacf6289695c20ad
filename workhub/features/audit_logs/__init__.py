"""
Audit trail for permission changes.
"""
