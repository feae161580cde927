"""
Services module for Codenex Studio.
"""
from .credentials import CredentialResolver, CredentialSource
from .generation_service import GenerationService
from .quota_service import QuotaDecision, QuotaService
from .user_service import UserService

__all__ = [
    "CredentialResolver",
    "CredentialSource",
    "GenerationService",
    "QuotaDecision",
    "QuotaService",
    "UserService",
]
