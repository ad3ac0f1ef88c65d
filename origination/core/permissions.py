from enum import Enum
from typing import Iterable, List


class Action(str, Enum):
    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    VERIFY = "verify"

    @classmethod
    def list_all(cls) -> List[str]:
        return [action.value for action in cls]


class Subject(str, Enum):
    ALL = "all"
    BANK = "Bank"
    USER_PROFILE = "UserProfile"
    APPLICANT = "Applicant"
    LOAN_APPLICATION = "LoanApplication"
    DOCUMENT = "Document"
    VERIFICATION = "Verification"
    INCOME = "Income"
    LOAN_OBLIGATION = "LoanObligation"
    PENDING_ACTION = "PendingAction"
    TIMELINE_EVENT = "TimelineEvent"

    @classmethod
    def list_all(cls) -> List[str]:
        return [subject.value for subject in cls]


class RoleType(str, Enum):
    CLERK = "CLERK"
    INSPECTOR = "INSPECTOR"
    LOAN_OFFICER = "LOAN_OFFICER"
    CEO = "CEO"
    LOAN_COMMITTEE = "LOAN_COMMITTEE"
    BOARD = "BOARD"
    BANK_ADMIN = "BANK_ADMIN"
    SAAS_ADMIN = "SAAS_ADMIN"
    APPLICANT = "APPLICANT"
    USER = "USER"

    @classmethod
    def list_all(cls) -> List[str]:
        return [role.value for role in cls]

    @classmethod
    def normalize(cls, values: Iterable[str]) -> List["RoleType"]:
        """Return unique roles that are valid members, preserving order."""
        seen = set()
        normalized: list[RoleType] = []
        for value in values:
            try:
                role = cls(value)
            except ValueError:
                continue
            if role in seen:
                continue
            seen.add(role)
            normalized.append(role)
        return normalized


# Roles that act on behalf of a bank; APPLICANT and USER never select a bank context.
BANK_STAFF_ROLES = frozenset(
    {
        RoleType.CLERK,
        RoleType.INSPECTOR,
        RoleType.LOAN_OFFICER,
        RoleType.CEO,
        RoleType.LOAN_COMMITTEE,
        RoleType.BOARD,
        RoleType.BANK_ADMIN,
    }
)

REVIEWER_ROLES = frozenset({RoleType.CEO, RoleType.LOAN_COMMITTEE, RoleType.BOARD})
