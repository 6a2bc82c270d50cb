"""Value types shared by every layer of the client.

This package is a leaf: it imports nothing from core, transport or
batching, so operations and outcomes can be built and inspected without
pulling in the HTTP stack.

Import patterns:
    from ledgerlink.contracts import WriteOperation, BatchRequest, FailPolicy
"""

from ledgerlink.contracts.account import (
    ACCOUNT_TOKEN_HEADER,
    APP_HEADER,
    AUTH_TOKEN_HEADER,
    DEV_HEADER,
    STAFF_TOKEN_HEADER,
    Account,
    AppIdentity,
    Authorisation,
    Datacenter,
    LegacyAuthorisation,
    PrivateAppAuthorisation,
    PrivateAppIdentity,
    PublicAppAuthorisation,
    PublicAppIdentity,
    UserCredentials,
)
from ledgerlink.contracts.enums import (
    RESPONSE_ERROR_CODES,
    WRITE_METHODS,
    ClientErrorCode,
    ExecutionHint,
    ExpiredTokenStrategy,
    FailPolicy,
    HttpMethod,
)
from ledgerlink.contracts.errors import (
    ApiClientError,
    AuthenticationBackoffError,
    AuthenticationError,
    AuthenticationTimeoutError,
    CapacityExceededError,
    RequestFailedError,
    ResponseError,
    ServiceError,
    ServiceErrorDetail,
    ServiceUnavailableError,
    SessionError,
    TransportError,
)
from ledgerlink.contracts.operations import (
    BatchRequest,
    ReadOperation,
    SearchOperation,
    ServiceOperation,
    WriteOperation,
    generate_operation_id,
)
from ledgerlink.contracts.outcomes import (
    NON_ABORTING_STATUSES,
    STATUS_MULTI_STATUS,
    STATUS_OK,
    AggregateOutcome,
    BatchAttempt,
    BatchOutcome,
    OperationOutcome,
)
from ledgerlink.contracts.search import SearchColumn, SearchMetadata, SearchResults

__all__ = [
    "ACCOUNT_TOKEN_HEADER",
    "APP_HEADER",
    "AUTH_TOKEN_HEADER",
    "DEV_HEADER",
    "NON_ABORTING_STATUSES",
    "RESPONSE_ERROR_CODES",
    "STAFF_TOKEN_HEADER",
    "STATUS_MULTI_STATUS",
    "STATUS_OK",
    "WRITE_METHODS",
    "Account",
    "AggregateOutcome",
    "ApiClientError",
    "AppIdentity",
    "AuthenticationBackoffError",
    "AuthenticationError",
    "AuthenticationTimeoutError",
    "Authorisation",
    "BatchAttempt",
    "BatchOutcome",
    "BatchRequest",
    "CapacityExceededError",
    "ClientErrorCode",
    "Datacenter",
    "ExecutionHint",
    "ExpiredTokenStrategy",
    "FailPolicy",
    "HttpMethod",
    "LegacyAuthorisation",
    "OperationOutcome",
    "PrivateAppAuthorisation",
    "PrivateAppIdentity",
    "PublicAppAuthorisation",
    "PublicAppIdentity",
    "ReadOperation",
    "RequestFailedError",
    "ResponseError",
    "SearchColumn",
    "SearchMetadata",
    "SearchOperation",
    "SearchResults",
    "ServiceError",
    "ServiceErrorDetail",
    "ServiceOperation",
    "ServiceUnavailableError",
    "SessionError",
    "TransportError",
    "UserCredentials",
    "WriteOperation",
    "generate_operation_id",
]
