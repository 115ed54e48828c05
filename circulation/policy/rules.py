"""Interface to the circulation rules engine that resolves policy ids.

Rule matching itself happens outside this package; callers hand in any
object satisfying :class:`PolicyResolver`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Tuple

RuleKey = Tuple[str, str, str, str]


@dataclass(frozen=True)
class PolicyMatch:
    policy_id: str
    rule_line: int


class PolicyResolver(Protocol):
    def resolve_policy_id(
        self,
        item_type_id: str,
        loan_type_id: str,
        patron_group_id: str,
        location_id: str,
    ) -> str:
        ...

    def explain_matches(
        self,
        item_type_id: str,
        loan_type_id: str,
        patron_group_id: str,
        location_id: str,
    ) -> List[PolicyMatch]:
        ...


@dataclass
class StaticPolicyResolver:
    """Exact-match lookup table with a fallback policy.

    ``rules`` maps ``(item_type_id, loan_type_id, patron_group_id,
    location_id)`` to a policy id; the table position of a rule stands in
    for its line number.
    """

    fallback_policy_id: str
    rules: Dict[RuleKey, str] = field(default_factory=dict)

    def resolve_policy_id(
        self,
        item_type_id: str,
        loan_type_id: str,
        patron_group_id: str,
        location_id: str,
    ) -> str:
        key = (item_type_id, loan_type_id, patron_group_id, location_id)
        return self.rules.get(key, self.fallback_policy_id)

    def explain_matches(
        self,
        item_type_id: str,
        loan_type_id: str,
        patron_group_id: str,
        location_id: str,
    ) -> List[PolicyMatch]:
        key = (item_type_id, loan_type_id, patron_group_id, location_id)
        matches: List[PolicyMatch] = []
        for line, (rule_key, policy_id) in enumerate(self.rules.items(), start=1):
            if rule_key == key:
                matches.append(PolicyMatch(policy_id, line))
        matches.append(PolicyMatch(self.fallback_policy_id, 0))
        return matches

    def add_rule(self, key: RuleKey, policy_id: str) -> None:
        self.rules[key] = policy_id


__all__ = ["PolicyMatch", "PolicyResolver", "RuleKey", "StaticPolicyResolver"]
