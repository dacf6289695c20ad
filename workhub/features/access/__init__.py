"""
Hierarchical access resolution.

Resolves a user's effective access at organization, workspace and project
scope and maps the resulting permissions to navigable route keys.
"""
