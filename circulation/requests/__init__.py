"""Request creation pipeline."""

from .create import (
    CreateRequestService,
    ItemStatusUpdater,
    LoanActionHistoryUpdater,
    RecallLoanUpdater,
    ResolvingRequestPolicyRepository,
    item_status_on_request_creation,
)

__all__ = [
    "CreateRequestService",
    "ItemStatusUpdater",
    "LoanActionHistoryUpdater",
    "RecallLoanUpdater",
    "ResolvingRequestPolicyRepository",
    "item_status_on_request_creation",
]
