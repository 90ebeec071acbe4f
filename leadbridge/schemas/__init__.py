# flake8: noqa: F401
"""Schemas for the application."""

from leadbridge.platform.auth.schemas import (
    BiginCredential,
    OAuth2ErrorResponse,
    OAuth2TokenResponse,
)

from .apollo import (
    ApolloPeopleQuery,
    PhoneWebhookOutcome,
    RevealedContact,
    RevealRequest,
    StoredPhone,
)
from .record import RecordPage
from .result import ApiResult
from .sync import (
    BatchReport,
    BatchSummary,
    BulkSyncRequest,
    SearchSyncRequest,
    SyncContactRequest,
    SyncOrganizationRequest,
    SyncRecordResult,
    UpsertResult,
)
