"""
Project membership, teams and project-scoped permissions.
"""
