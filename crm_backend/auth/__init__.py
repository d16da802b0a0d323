from .dependencies import AuthenticatedUser, get_authenticated_user

__all__ = ["AuthenticatedUser", "get_authenticated_user"]
