"""
Application initialization module
Handles initial setup tasks like creating the default administrator
"""

import logging

from sqlalchemy.orm import Session

from billing.core.config import settings
from billing.models.account import Account
from billing.services.account import AccountService

logger = logging.getLogger(__name__)


def init_super_admin(db: Session) -> None:
    """
    Create the administrator account from settings unless one already exists.

    Args:
        db: Database session
    """
    try:
        existing_admin = (
            db.query(Account)
            .filter(Account.roles_csv.contains(settings.admin_role))
            .first()
        )

        if existing_admin:
            logger.info(
                f"✅ Admin account already exists (ID: {existing_admin.id}, Email: {existing_admin.email})"
            )
            db.commit()
            return

        admin = AccountService(db).register(
            settings.admin_default_email,
            settings.admin_default_password,
            roles=[settings.admin_role],
        )

        logger.info("=" * 60)
        logger.info("🎉 ADMIN ACCOUNT CREATED SUCCESSFULLY!")
        logger.info("=" * 60)
        logger.info(f"Email: {admin.email}")
        logger.info(f"Roles: {', '.join(admin.roles)}")
        logger.info("=" * 60)
        logger.warning("⚠️  IMPORTANT: Change the default password immediately!")
        logger.info("=" * 60)

    except Exception as e:
        logger.error(f"❌ Failed to initialize admin account: {e}")
        db.rollback()
        raise


def initialize_application(db: Session) -> None:
    """
    Run all application initialization tasks.

    Args:
        db: Database session
    """
    logger.info("🚀 Starting application initialization...")

    init_super_admin(db)

    logger.info("✅ Application initialization completed!")
