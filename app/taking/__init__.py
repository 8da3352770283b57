"""Quiz-taking state machine and its backends."""

from app.taking.backends import (
    TakingBackend,
    TakingBackendError,
    AuthenticationRequiredError,
    ServiceTakingBackend,
    HttpTakingBackend,
)
from app.taking.engine import (
    AttemptEngine,
    TakingPhase,
    TakingState,
    NavigationState,
    ProgressInfo,
    QuizResult,
    InvalidPhaseError,
)

__all__ = [
    "TakingBackend",
    "TakingBackendError",
    "AuthenticationRequiredError",
    "ServiceTakingBackend",
    "HttpTakingBackend",
    "AttemptEngine",
    "TakingPhase",
    "TakingState",
    "NavigationState",
    "ProgressInfo",
    "QuizResult",
    "InvalidPhaseError",
]
