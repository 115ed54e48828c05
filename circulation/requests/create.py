"""Request creation pipeline.

Validation steps run in order and stop at the first failure. A request
that passes every check is placed at the end of the item's queue and then
handed to the collaborators that update the item, the loan and storage.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional, Protocol

from circulation.config import system_now
from circulation.domain.models import ItemStatus, RequestContext, RequestType
from circulation.policy.request_policy import RequestPolicy
from circulation.policy.rules import PolicyResolver
from circulation.support.result import (
    Result,
    ServerErrorFailure,
    failed,
    failed_validation,
    succeeded,
)

log = logging.getLogger(__name__)


class RequestPolicyRepository(Protocol):
    def lookup_request_policy(self, context: RequestContext) -> Result[RequestContext]:
        ...


class RequestCreationStep(Protocol):
    def on_request_creation(self, context: RequestContext) -> Result[RequestContext]:
        ...


class RequestRepository(Protocol):
    def create(self, context: RequestContext) -> Result[RequestContext]:
        ...


def refuse_when_item_does_not_exist(context: RequestContext) -> Result[RequestContext]:
    if context.item is None:
        return failed_validation("Item does not exist", "itemId", context.request.item_id)
    return succeeded(context)


def refuse_when_invalid_user_and_patron_group(context: RequestContext) -> Result[RequestContext]:
    requester = context.requester
    if requester is None:
        return failed_validation(
            "A valid user and patron group are required. User is null", "userId", None
        )
    if requester.patron_group_id is None:
        return failed_validation(
            "A valid patron group is required. PatronGroup ID is null", "PatronGroupId", None
        )
    return succeeded(context)


def refuse_when_item_is_not_valid(context: RequestContext) -> Result[RequestContext]:
    if not context.allowed_for_item():
        request_type = context.request.request_type.value
        item_status = context.item.status.value if context.item else None
        return failed_validation(
            f"{request_type} requests are not allowed for {item_status} item status combination",
            request_type,
            context.request.item_id,
        )
    return succeeded(context)


def refuse_when_request_cannot_be_fulfilled(context: RequestContext) -> Result[RequestContext]:
    request_type = context.request.request_type
    policy = context.request_policy
    if policy is None or not policy.allows_type(request_type):
        return failed_validation(
            f"{request_type.value} requests are not allowed for this patron and item combination",
            "requestType",
            request_type.value,
        )
    return succeeded(context)


def set_request_queue_position(context: RequestContext) -> RequestContext:
    position = context.request_queue.next_available_position()
    return context.with_request(context.request.change_position(position))


def item_status_on_request_creation(request_type: RequestType, status: ItemStatus) -> ItemStatus:
    if request_type is RequestType.PAGE:
        return ItemStatus.PAGED
    if request_type is RequestType.RECALL and status.is_checked_out():
        return ItemStatus.CHECKED_OUT_RECALLED
    if request_type is RequestType.HOLD and status is ItemStatus.CHECKED_OUT:
        return ItemStatus.CHECKED_OUT_HELD
    return status


class ResolvingRequestPolicyRepository:
    """Looks up the request policy the rules engine picks for a request."""

    def __init__(self, resolver: PolicyResolver, policies: Mapping[str, RequestPolicy]) -> None:
        self.resolver = resolver
        self.policies = policies

    def lookup_request_policy(self, context: RequestContext) -> Result[RequestContext]:
        item = context.item
        requester = context.requester
        policy_id = self.resolver.resolve_policy_id(
            item.material_type_id or "",
            item.loan_type_id or "",
            requester.patron_group_id or "",
            item.location_id or "",
        )
        policy = self.policies.get(policy_id)
        if policy is None:
            return failed(ServerErrorFailure(f"Request policy {policy_id} could not be found"))
        return succeeded(context.with_request_policy(policy))


class ItemStatusUpdater:
    def __init__(self, save_item: Optional[Callable[..., None]] = None) -> None:
        self.save_item = save_item

    def on_request_creation(self, context: RequestContext) -> Result[RequestContext]:
        item = context.item
        new_status = item_status_on_request_creation(context.request.request_type, item.status)
        if new_status is item.status:
            return succeeded(context)
        updated = item.change_status(new_status)
        if self.save_item is not None:
            self.save_item(updated)
        return succeeded(context.with_item(updated))


class LoanActionHistoryUpdater:
    _ACTIONS = {
        RequestType.HOLD: "holdrequested",
        RequestType.RECALL: "recallrequested",
    }

    def on_request_creation(self, context: RequestContext) -> Result[RequestContext]:
        action = self._ACTIONS.get(context.request.request_type)
        if context.loan is None or action is None:
            return succeeded(context)
        return succeeded(context.with_loan(context.loan.change_action(action)))


class RecallLoanUpdater:
    """Shortens the current loan when a recall is placed on its item."""

    def __init__(self, clock: Callable[[], datetime] = system_now) -> None:
        self.clock = clock

    def on_request_creation(self, context: RequestContext) -> Result[RequestContext]:
        if context.request.request_type is not RequestType.RECALL:
            return succeeded(context)
        if context.loan is None or context.loan_policy is None:
            return succeeded(context)
        return context.loan_policy.recall(context.loan, self.clock()).map(context.with_loan)


class CreateRequestService:
    def __init__(
        self,
        request_repository: RequestRepository,
        update_item: RequestCreationStep,
        update_loan_action_history: RequestCreationStep,
        update_loan: RequestCreationStep,
        request_policy_repository: RequestPolicyRepository,
    ) -> None:
        self.request_repository = request_repository
        self.update_item = update_item
        self.update_loan_action_history = update_loan_action_history
        self.update_loan = update_loan
        self.request_policy_repository = request_policy_repository

    def create_request(self, context: RequestContext) -> Result[RequestContext]:
        result = (
            refuse_when_item_does_not_exist(context)
            .next(refuse_when_invalid_user_and_patron_group)
            .next(refuse_when_item_is_not_valid)
            .next(self.request_policy_repository.lookup_request_policy)
            .next(refuse_when_request_cannot_be_fulfilled)
            .map(set_request_queue_position)
        )

        if result.is_failure():
            log.info(
                "REQUEST_REFUSED request_id=%s item_id=%s errors=%s",
                context.request.id,
                context.request.item_id,
                [error.message for error in result.validation_errors()],
            )
            return result

        created = (
            result.next(self.update_item.on_request_creation)
            .next(self.update_loan_action_history.on_request_creation)
            .next(self.update_loan.on_request_creation)
            .next(self.request_repository.create)
        )
        if created.is_success():
            log.info(
                "REQUEST_CREATED request_id=%s item_id=%s position=%s",
                created.value.request.id,
                created.value.request.item_id,
                created.value.request.position,
            )
        return created


__all__ = [
    "CreateRequestService",
    "ItemStatusUpdater",
    "LoanActionHistoryUpdater",
    "RecallLoanUpdater",
    "RequestCreationStep",
    "RequestPolicyRepository",
    "RequestRepository",
    "ResolvingRequestPolicyRepository",
    "item_status_on_request_creation",
    "refuse_when_invalid_user_and_patron_group",
    "refuse_when_item_does_not_exist",
    "refuse_when_item_is_not_valid",
    "refuse_when_request_cannot_be_fulfilled",
    "set_request_queue_position",
]
