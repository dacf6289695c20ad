"""
Organization permission keys and the legacy explicit-grant service.

OWNER holds every key implicitly; other members hold explicit grants plus
their role defaults.
"""
