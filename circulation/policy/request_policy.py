"""Request policy: which request types a patron and item combination allows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from circulation.domain.models import RequestType
from circulation.policy.documents import RequestPolicyDocument


@dataclass(frozen=True)
class RequestPolicy:
    id: Optional[str] = None
    name: Optional[str] = None
    request_types: FrozenSet[RequestType] = frozenset()

    @classmethod
    def allowing(cls, types: Iterable[RequestType], policy_id: Optional[str] = None) -> "RequestPolicy":
        return cls(id=policy_id, request_types=frozenset(types))

    @classmethod
    def from_document(cls, document: RequestPolicyDocument) -> "RequestPolicy":
        types = {RequestType.from_value(value) for value in document.request_types}
        types.discard(None)
        return cls(id=document.id, name=document.name, request_types=frozenset(types))

    @classmethod
    def from_representation(cls, representation: Mapping[str, Any]) -> "RequestPolicy":
        return cls.from_document(RequestPolicyDocument.model_validate(representation))

    def allows_type(self, request_type: RequestType) -> bool:
        return request_type in self.request_types


__all__ = ["RequestPolicy"]
