"""SQLAlchemy ORM models for the fund portal.

All models are exported from this module for convenient imports:
    from app.models import AccountCreationToken, Investor, User, ...

Models are organized by domain:
- fund.py: Fund (tenant root)
- kyc_application.py: KycApplication (prospect intake)
- user.py: User (tenant-scoped account, id from identity provider)
- investor.py: Investor (investor profile)
- account_creation_token.py: AccountCreationToken (signup invite)
- verification_code.py: EmailVerificationCode (one-time codes)
"""

from app.models.account_creation_token import AccountCreationToken
from app.models.base import Base, TimestampMixin
from app.models.fund import Fund
from app.models.investor import Investor
from app.models.kyc_application import KycApplication
from app.models.user import User
from app.models.verification_code import EmailVerificationCode

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Tenancy
    "Fund",
    "User",
    # Onboarding
    "KycApplication",
    "Investor",
    # Account creation
    "AccountCreationToken",
    "EmailVerificationCode",
]
