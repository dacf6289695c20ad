"""
Organizations, memberships and departments.
"""
