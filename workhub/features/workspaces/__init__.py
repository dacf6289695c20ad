"""
Workspace models.
"""
