from astrochat.domains.contacts.schema import ContactSummary, RequestOutcome  # noqa: F401
from astrochat.domains.contacts.service import ContactGraph  # noqa: F401

__all__ = ["ContactGraph", "ContactSummary", "RequestOutcome"]
