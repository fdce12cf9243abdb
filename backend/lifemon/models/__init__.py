from lifemon.models.user import User, UserProfile

__all__ = ["User", "UserProfile"]
