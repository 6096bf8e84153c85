"""Use cases for business logic orchestration."""

from socialhub.core.use_cases.connect_platform_use_case import (
    ConnectPlatformUseCase,
    ExchangeFailure,
    OAuthFlowError,
    PersistenceFailure,
    ProtocolMismatch,
    SessionExpired,
    StateUnavailable,
    UnsupportedPlatform,
    UserDenied,
)
from socialhub.core.use_cases.refresh_connection_use_case import RefreshConnectionUseCase
from socialhub.core.use_cases.test_connection_use_case import (
    ConnectionNotFound,
    ConnectionTestResult,
    TestConnectionUseCase,
)

__all__ = [
    "ConnectPlatformUseCase",
    "ConnectionNotFound",
    "ConnectionTestResult",
    "ExchangeFailure",
    "OAuthFlowError",
    "PersistenceFailure",
    "ProtocolMismatch",
    "RefreshConnectionUseCase",
    "SessionExpired",
    "StateUnavailable",
    "TestConnectionUseCase",
    "UnsupportedPlatform",
    "UserDenied",
]
