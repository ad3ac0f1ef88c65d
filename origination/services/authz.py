"""Role based abilities.

An :class:`Ability` is derived from a principal's role assignments and answers
``can(action, subject)`` questions, optionally against a concrete resource
whose attributes must satisfy the rule's conditions. Rules added later take
precedence over earlier ones; anything not explicitly granted is denied.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping
from uuid import UUID

from origination.core.logging import audit_event
from origination.core.permissions import REVIEWER_ROLES, Action, RoleType, Subject
from origination.core.results import ServiceError


@dataclass(frozen=True, slots=True)
class RoleGrant:
    role: RoleType
    bank_id: UUID | None = None


@dataclass(slots=True)
class Principal:
    """Authenticated caller as seen by the core: id, role grants and active role."""

    id: UUID
    roles: tuple[RoleGrant, ...] = ()
    email: str | None = None
    name: str | None = None
    current_role: RoleGrant | None = None

    def __post_init__(self) -> None:
        if self.current_role is None:
            self.current_role = resolve_current_role(self.roles)

    @property
    def bank_id(self) -> UUID | None:
        return self.current_role.bank_id if self.current_role else None

    @property
    def role_name(self) -> str | None:
        if self.current_role is not None:
            return self.current_role.role.value
        if self.roles:
            return self.roles[0].role.value
        return None


def resolve_current_role(roles: Iterable[RoleGrant], bank_id: UUID | str | None = None) -> RoleGrant | None:
    """First bank-scoped, non-applicant grant (optionally for a specific bank)."""
    for grant in roles:
        if grant.bank_id is None or grant.role == RoleType.APPLICANT:
            continue
        if bank_id is not None and str(grant.bank_id) != str(bank_id):
            continue
        return grant
    return None


def _names(values: Iterable[Any]) -> frozenset[str]:
    return frozenset(value.value if hasattr(value, "value") else str(value) for value in values)


def _as_iterable(value: Any) -> Iterable[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return value
    return (value,)


@dataclass(frozen=True)
class Rule:
    actions: frozenset[str]
    subjects: frozenset[str]
    conditions: Mapping[str, Any] | None = None
    fields: frozenset[str] | None = None
    inverted: bool = False

    def matches_action(self, action: str) -> bool:
        return Action.MANAGE.value in self.actions or action in self.actions

    def matches_subject(self, subject: str) -> bool:
        return Subject.ALL.value in self.subjects or subject in self.subjects

    def matches_field(self, field_name: str | None) -> bool:
        if self.fields is None:
            return True
        if field_name is None:
            return not self.inverted
        return field_name in self.fields

    def matches_conditions(self, resource: Any | None) -> bool:
        if not self.conditions:
            return True
        if resource is None:
            # Subject-level checks pass on any conditional grant but never on a conditional denial.
            return not self.inverted
        for key, expected in self.conditions.items():
            actual = _attribute(resource, key)
            if actual is None:
                return False
            allowed = {str(item) for item in _as_iterable(expected)}
            if str(actual) not in allowed:
                return False
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "action": sorted(self.actions),
            "subject": sorted(self.subjects),
            "conditions": {key: _jsonable(value) for key, value in (self.conditions or {}).items()} or None,
            "fields": sorted(self.fields) if self.fields is not None else None,
            "inverted": self.inverted,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item) for item in value]
    return str(value)


def _attribute(resource: Any, key: str) -> Any:
    if isinstance(resource, Mapping):
        return resource.get(key)
    return getattr(resource, key, None)


def subject_name(subject: Any) -> str:
    if isinstance(subject, Subject):
        return subject.value
    if isinstance(subject, str):
        return subject
    return getattr(subject, "__subject__", None) or type(subject).__name__


class Ability:
    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def can(
        self,
        action: Action | str,
        subject: Any,
        field: str | None = None,
        resource: Any | None = None,
    ) -> bool:
        """Check ``action`` on a subject name or on a resource instance.

        Passing a model instance as ``subject`` is shorthand for its class name
        plus ``resource=instance``. Never raises.
        """
        action_name = action.value if isinstance(action, Action) else str(action)
        if not isinstance(subject, (str, Subject)):
            resource = subject if resource is None else resource
        name = subject_name(subject)
        for rule in reversed(self._rules):
            if not (rule.matches_action(action_name) and rule.matches_subject(name)):
                continue
            if not rule.matches_field(field):
                continue
            if not rule.matches_conditions(resource):
                continue
            return not rule.inverted
        return False

    def cannot(self, action: Action | str, subject: Any, field: str | None = None, resource: Any | None = None) -> bool:
        return not self.can(action, subject, field=field, resource=resource)


class AbilityBuilder:
    def __init__(self) -> None:
        self._rules: list[Rule] = []

    def can(
        self,
        actions: Action | Iterable[Action],
        subjects: Subject | Iterable[Subject],
        conditions: Mapping[str, Any] | None = None,
        fields: Iterable[str] | None = None,
    ) -> None:
        self._add(actions, subjects, conditions, fields, inverted=False)

    def cannot(
        self,
        actions: Action | Iterable[Action],
        subjects: Subject | Iterable[Subject],
        conditions: Mapping[str, Any] | None = None,
        fields: Iterable[str] | None = None,
    ) -> None:
        self._add(actions, subjects, conditions, fields, inverted=True)

    def _add(self, actions, subjects, conditions, fields, *, inverted: bool) -> None:
        self._rules.append(
            Rule(
                actions=_names(_as_iterable(actions)),
                subjects=_names(_as_iterable(subjects)),
                conditions=dict(conditions) if conditions else None,
                fields=frozenset(fields) if fields is not None else None,
                inverted=inverted,
            )
        )

    def build(self) -> Ability:
        return Ability(self._rules)


RuleBuilder = Callable[[AbilityBuilder, UUID | None], None]


def _saas_admin_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    builder.can(Action.MANAGE, Subject.ALL)


def _bank_admin_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    scope = {"bank_id": bank_id}
    builder.can([Action.READ, Action.UPDATE], Subject.BANK, {"id": bank_id})
    builder.can([Action.READ, Action.CREATE, Action.UPDATE], Subject.USER_PROFILE)
    builder.can(
        Action.MANAGE,
        [
            Subject.LOAN_APPLICATION,
            Subject.DOCUMENT,
            Subject.VERIFICATION,
            Subject.APPLICANT,
            Subject.INCOME,
            Subject.LOAN_OBLIGATION,
            Subject.PENDING_ACTION,
        ],
        scope,
    )
    builder.can(Action.READ, Subject.TIMELINE_EVENT, scope)


def _loan_officer_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    scope = {"bank_id": bank_id}
    builder.can(Action.READ, Subject.BANK, {"id": bank_id})
    builder.can([Action.READ, Action.CREATE, Action.UPDATE], Subject.LOAN_APPLICATION, scope)
    builder.can([Action.READ, Action.CREATE], Subject.APPLICANT, scope)
    builder.can([Action.READ, Action.CREATE, Action.UPDATE], Subject.DOCUMENT, scope)
    builder.can(Action.READ, [Subject.INCOME, Subject.LOAN_OBLIGATION, Subject.VERIFICATION], scope)
    builder.can([Action.READ, Action.CREATE], Subject.PENDING_ACTION, scope)
    builder.can(Action.READ, Subject.TIMELINE_EVENT, scope)


def _clerk_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    scope = {"bank_id": bank_id}
    builder.can(
        [Action.READ, Action.CREATE],
        [
            Subject.APPLICANT,
            Subject.LOAN_APPLICATION,
            Subject.INCOME,
            Subject.LOAN_OBLIGATION,
            Subject.DOCUMENT,
            Subject.PENDING_ACTION,
        ],
        scope,
    )
    builder.can(Action.READ, Subject.TIMELINE_EVENT, scope)


def _inspector_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    scope = {"bank_id": bank_id}
    builder.can(Action.READ, [Subject.LOAN_APPLICATION, Subject.APPLICANT], scope)
    builder.can(Action.UPDATE, Subject.LOAN_APPLICATION, scope, fields=["status"])
    builder.can(
        [Action.READ, Action.CREATE, Action.UPDATE, Action.VERIFY],
        Subject.VERIFICATION,
        scope,
    )
    builder.can([Action.READ, Action.CREATE], Subject.DOCUMENT, scope)
    builder.can(Action.READ, Subject.TIMELINE_EVENT, scope)


def _reviewer_rules(builder: AbilityBuilder, bank_id: UUID | None) -> None:
    scope = {"bank_id": bank_id}
    builder.can([Action.READ, Action.APPROVE, Action.REJECT], Subject.LOAN_APPLICATION, scope)
    builder.can(Action.UPDATE, Subject.LOAN_APPLICATION, scope, fields=["status"])
    builder.can(
        Action.READ,
        [Subject.VERIFICATION, Subject.INCOME, Subject.LOAN_OBLIGATION, Subject.TIMELINE_EVENT],
        scope,
    )


ROLE_RULES: dict[RoleType, RuleBuilder] = {
    RoleType.SAAS_ADMIN: _saas_admin_rules,
    RoleType.BANK_ADMIN: _bank_admin_rules,
    RoleType.LOAN_OFFICER: _loan_officer_rules,
    RoleType.CLERK: _clerk_rules,
    RoleType.INSPECTOR: _inspector_rules,
    **{role: _reviewer_rules for role in REVIEWER_ROLES},
}

# Roles that only make sense inside a bank get no rules without one.
_GLOBAL_ROLES = frozenset({RoleType.SAAS_ADMIN})


def define_ability_for(principal: Principal | None) -> Ability:
    builder = AbilityBuilder()
    if principal is None:
        return builder.build()
    for grant in principal.roles:
        rules_for = ROLE_RULES.get(grant.role)
        if rules_for is None:
            continue
        if grant.bank_id is None and grant.role not in _GLOBAL_ROLES:
            continue
        rules_for(builder, grant.bank_id)
    return builder.build()


def ensure_can(
    actor: Principal | None,
    action: Action,
    subject: Any,
    *,
    field: str | None = None,
    resource: Any | None = None,
) -> None:
    """Raise an unauthorized ``ServiceError`` unless ``actor`` may act on ``subject``."""
    if define_ability_for(actor).can(action, subject, field=field, resource=resource):
        return
    target = resource if resource is not None else subject
    resource_id = None if isinstance(target, str) else _attribute(target, "id")
    audit_event(
        "authorization.denied",
        actor_id=str(actor.id) if actor else None,
        action=action.value,
        subject=subject_name(subject),
        resource_id=str(resource_id) if resource_id is not None else None,
    )
    raise ServiceError.unauthorized()


def authorize(action: Action, subject: Subject, *, field: str | None = None):
    """Gate an async operation on a subject-level ability of its ``actor`` argument.

    The check runs before the operation body, so a denied caller never reaches
    the database.
    """

    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            bound = signature.bind_partial(*args, **kwargs)
            actor = bound.arguments.get("actor")
            ensure_can(actor, action, subject, field=field)
            return await func(*args, **kwargs)

        return wrapper

    return decorator
