"""Review prompts, decision handling, and customer notifications."""

from .actions import (
    APPROVE,
    DECLINE,
    Decision,
    InvalidDecisionError,
    encode_decision_value,
    parse_decision_value,
)
from .ledger import ResolvedPromptLedger
from .messages import (
    APPROVE_ACTION_ID,
    DECLINE_ACTION_ID,
    build_resolved_message,
    build_review_message,
    build_test_message,
)
from .notifications import (
    DispatchError,
    PromptExpiredError,
    PromptReference,
    ReviewChannel,
    ReviewPrompt,
)
from .templates import NotificationTemplates
from .workflow import (
    ALREADY_RESOLVED,
    EXPIRED,
    FAILED,
    SENT,
    ApprovalWorkflow,
    NotificationResult,
)

__all__ = [
    "APPROVE",
    "DECLINE",
    "Decision",
    "InvalidDecisionError",
    "encode_decision_value",
    "parse_decision_value",
    "ResolvedPromptLedger",
    "APPROVE_ACTION_ID",
    "DECLINE_ACTION_ID",
    "build_resolved_message",
    "build_review_message",
    "build_test_message",
    "DispatchError",
    "PromptExpiredError",
    "PromptReference",
    "ReviewChannel",
    "ReviewPrompt",
    "NotificationTemplates",
    "ALREADY_RESOLVED",
    "EXPIRED",
    "FAILED",
    "SENT",
    "ApprovalWorkflow",
    "NotificationResult",
]
