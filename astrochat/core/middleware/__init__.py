from astrochat.core.middleware.validation import ValidationNormalizeMiddleware  # noqa: F401

__all__ = ["ValidationNormalizeMiddleware"]
