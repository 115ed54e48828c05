"""Utilities for loading and validating policy documents from disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft7Validator
from pydantic import ValidationError as DocumentValidationError

from circulation.config import CirculationEnv, load_circulation_env
from circulation.exceptions import PolicyLoadError, PolicyNotFoundError
from circulation.policy.documents import (
    FixedDueDateScheduleDocument,
    LoanPolicyDocument,
    RequestPolicyDocument,
)
from circulation.policy.loan_policy import LoanPolicy
from circulation.policy.request_policy import RequestPolicy
from circulation.policy.schedules import NO_SCHEDULE, FixedDueDateSchedule

log = logging.getLogger(__name__)

_LOAN_POLICY_SCHEMA_PATH = Path(__file__).with_name("loan_policy_schema.yaml")
_POLICY_SUFFIXES = {".yaml", ".yml", ".json"}

FIXED_DUE_DATE_SCHEDULE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "schedules"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "schedules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["from", "to", "due"],
            },
        },
    },
}

REQUEST_POLICY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "requestTypes"],
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "requestTypes": {
            "type": "array",
            "items": {"enum": ["Hold", "Page", "Recall"]},
        },
    },
}

_LOAN_POLICY_VALIDATOR: Draft7Validator | None = None


def _loan_policy_validator() -> Draft7Validator:
    global _LOAN_POLICY_VALIDATOR
    if _LOAN_POLICY_VALIDATOR is None:
        schema = yaml.safe_load(_LOAN_POLICY_SCHEMA_PATH.read_text(encoding="utf-8"))
        _LOAN_POLICY_VALIDATOR = Draft7Validator(schema)
    return _LOAN_POLICY_VALIDATOR


_SCHEDULE_VALIDATOR = Draft7Validator(FIXED_DUE_DATE_SCHEDULE_SCHEMA)
_REQUEST_POLICY_VALIDATOR = Draft7Validator(REQUEST_POLICY_SCHEMA)


@dataclass
class PolicyBundle:
    """Every policy document found in a directory, keyed by id."""

    loan_policies: Dict[str, LoanPolicy] = field(default_factory=dict)
    request_policies: Dict[str, RequestPolicy] = field(default_factory=dict)
    schedules: Dict[str, FixedDueDateSchedule] = field(default_factory=dict)

    def loan_policy(self, policy_id: str) -> LoanPolicy:
        try:
            return self.loan_policies[policy_id]
        except KeyError as exc:
            raise PolicyNotFoundError(f"Loan policy {policy_id} is not loaded") from exc

    def request_policy(self, policy_id: str) -> RequestPolicy:
        try:
            return self.request_policies[policy_id]
        except KeyError as exc:
            raise PolicyNotFoundError(f"Request policy {policy_id} is not loaded") from exc


def load_policy_file(path: Path | str) -> Mapping[str, Any]:
    """Read a YAML or JSON policy document from ``path``."""

    file_path = Path(path)
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise PolicyLoadError(f"Unable to read policy document {file_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise PolicyLoadError(f"Policy document {file_path} must contain a mapping")
    return data


def validate_document(
    data: Mapping[str, Any],
    validator: Draft7Validator,
    *,
    source: str,
    strict: bool,
) -> list[str]:
    """Validate ``data`` and return the schema violations found.

    Violations are logged; in ``strict`` mode they raise
    :class:`PolicyLoadError` instead.
    """

    problems = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        location = "/".join(str(part) for part in error.path) or "<root>"
        problems.append(f"{location}: {error.message}")

    if problems:
        log.warning(
            "POLICY_SCHEMA_INVALID source=%s problems=%s",
            source,
            "; ".join(problems),
        )
        if strict:
            raise PolicyLoadError(f"Policy document {source} is invalid: {problems[0]}")
    return problems


def load_schedule(
    data: Mapping[str, Any],
    *,
    source: str = "<memory>",
    env: Optional[CirculationEnv] = None,
) -> FixedDueDateSchedule:
    env = env or load_circulation_env()
    validate_document(data, _SCHEDULE_VALIDATOR, source=source, strict=env.strict_policy_schema)
    document = _parse(FixedDueDateScheduleDocument, data, source)
    return FixedDueDateSchedule.from_document(document, env.tzinfo)


def load_request_policy(
    data: Mapping[str, Any],
    *,
    source: str = "<memory>",
    env: Optional[CirculationEnv] = None,
) -> RequestPolicy:
    env = env or load_circulation_env()
    validate_document(
        data, _REQUEST_POLICY_VALIDATOR, source=source, strict=env.strict_policy_schema
    )
    return RequestPolicy.from_document(_parse(RequestPolicyDocument, data, source))


def load_loan_policy(
    data: Mapping[str, Any],
    schedules: Optional[Mapping[str, FixedDueDateSchedule]] = None,
    *,
    source: str = "<memory>",
    env: Optional[CirculationEnv] = None,
) -> LoanPolicy:
    """Build a :class:`LoanPolicy` and attach the schedules it references.

    A referenced schedule missing from ``schedules`` is left unconfigured;
    due date calculations then report a policy error rather than failing
    here.
    """

    env = env or load_circulation_env()
    validate_document(
        data, _loan_policy_validator(), source=source, strict=env.strict_policy_schema
    )
    document = _parse(LoanPolicyDocument, data, source)
    known = schedules or {}

    loans = document.loans_policy
    checkout_schedule_id = loans.fixed_due_date_schedule_id if loans else None
    renewal_schedule_id = document.renewals_policy.alternate_fixed_due_date_schedule_id

    policy = LoanPolicy.from_document(
        document,
        _schedule_for(checkout_schedule_id, known, source),
        _schedule_for(renewal_schedule_id, known, source),
    )
    log.info("POLICY_LOADED kind=loan id=%s source=%s", policy.id, source)
    return policy


def load_policies_from_dir(
    directory: Path | str | None = None,
    *,
    env: Optional[CirculationEnv] = None,
) -> PolicyBundle:
    """Load every policy document under ``directory``.

    Documents are classified by shape: a ``schedules`` list marks a fixed
    due date schedule, ``requestTypes`` a request policy, anything else is
    a loan policy. Schedules are loaded first so loan policies can attach
    them.
    """

    env = env or load_circulation_env()
    root = Path(directory) if directory is not None else env.policy_dir
    if root is None:
        raise PolicyLoadError("No policy directory configured (CIRCULATION_POLICY_DIR)")
    if not root.is_dir():
        raise PolicyLoadError(f"Policy directory {root} does not exist")

    documents = [
        (path, load_policy_file(path))
        for path in sorted(root.iterdir())
        if path.is_file() and path.suffix.lower() in _POLICY_SUFFIXES
    ]

    bundle = PolicyBundle()
    loan_documents = []
    for path, data in documents:
        if env.debug:
            log.info("POLICY_DOCUMENT_FOUND source=%s keys=%s", path, sorted(data))
        if "schedules" in data:
            schedule = load_schedule(data, source=str(path), env=env)
            if schedule.schedule_id:
                bundle.schedules[schedule.schedule_id] = schedule
        elif "requestTypes" in data:
            request_policy = load_request_policy(data, source=str(path), env=env)
            if request_policy.id:
                bundle.request_policies[request_policy.id] = request_policy
        else:
            loan_documents.append((path, data))

    for path, data in loan_documents:
        loan_policy = load_loan_policy(data, bundle.schedules, source=str(path), env=env)
        if loan_policy.id:
            bundle.loan_policies[loan_policy.id] = loan_policy

    return bundle


def _parse(model: Any, data: Mapping[str, Any], source: str) -> Any:
    try:
        return model.model_validate(data)
    except DocumentValidationError as exc:
        raise PolicyLoadError(f"Policy document {source} could not be parsed: {exc}") from exc


def _schedule_for(
    schedule_id: Optional[str],
    schedules: Mapping[str, FixedDueDateSchedule],
    source: str,
) -> FixedDueDateSchedule:
    if not schedule_id:
        return NO_SCHEDULE
    schedule = schedules.get(schedule_id)
    if schedule is None:
        log.warning("POLICY_SCHEDULE_MISSING schedule_id=%s source=%s", schedule_id, source)
        return NO_SCHEDULE
    return schedule


__all__ = [
    "FIXED_DUE_DATE_SCHEDULE_SCHEMA",
    "PolicyBundle",
    "REQUEST_POLICY_SCHEMA",
    "load_loan_policy",
    "load_policies_from_dir",
    "load_policy_file",
    "load_request_policy",
    "load_schedule",
    "validate_document",
]
