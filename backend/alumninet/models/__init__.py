from alumninet.models.profile import Profile

__all__ = [
    "Profile",
]
