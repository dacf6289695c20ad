"""
Department management for the department-driven org permission model.
"""
