from astrochat.domains.users.model import PendingRequest, User, UserKind  # noqa: F401

__all__ = ["PendingRequest", "User", "UserKind"]
