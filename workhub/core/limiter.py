from slowapi import Limiter

from workhub.features.users.dependencies import get_authorization_header


# Keyed by bearer token so each caller has its own budget
limiter = Limiter(key_func=get_authorization_header)
