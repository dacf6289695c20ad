"""
Workhub access-resolution service.

Resolves organization, workspace and project access for platform users.
"""
