from origination.models.applicant import Applicant
from origination.models.bank import Bank
from origination.models.income import Income, IncomeDetail
from origination.models.loan_application import LoanApplication
from origination.models.loan_obligation import LoanObligation, LoanObligationDetail
from origination.models.pending_action import PendingAction
from origination.models.role_assignment import RoleAssignment
from origination.models.timeline_event import TimelineEvent
from origination.models.user_profile import UserProfile
from origination.models.verification import Verification

__all__ = [
    "Applicant",
    "Bank",
    "Income",
    "IncomeDetail",
    "LoanApplication",
    "LoanObligation",
    "LoanObligationDetail",
    "PendingAction",
    "RoleAssignment",
    "TimelineEvent",
    "UserProfile",
    "Verification",
]
