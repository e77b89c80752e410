# core/authentication.py
from rest_framework.authentication import TokenAuthentication


class BearerTokenAuthentication(TokenAuthentication):
    """Token auth that reads `Authorization: Bearer <key>` instead of `Token <key>`."""
    keyword = 'Bearer'
