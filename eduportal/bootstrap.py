# bootstrap.py
# Creates the master admin account on startup

# Master-admin accounts cannot be created through the API, so the single
# master account comes from MASTER_ADMIN_EMAIL / MASTER_ADMIN_PASSWORD.
# Runs from the app lifespan; does nothing when a master admin exists or
# the credentials are not configured.

# @see: main.py - lifespan()

from typing import Optional

from eduportal import config
from eduportal.logging_config import get_logger
from eduportal.models import Role
from eduportal.security import hash_password
from eduportal.store import PortalStores, utc_now


logger = get_logger("bootstrap")


def ensure_master_admin(stores: PortalStores, auth_client=None) -> Optional[dict]:
    """
    Create the master admin if none exists yet.

    Args:
        stores: Portal stores
        auth_client: Firebase auth module or MockAuth (defaults to config.get_auth())

    Returns:
        The existing or newly created master-admin record, or None when
        no master admin exists and none is configured
    """
    existing = stores.users.find_one([("role", "==", Role.MASTER_ADMIN.value)])
    if existing is not None:
        logger.debug("Master admin already exists: %s", existing["id"])
        return existing

    email = config.MASTER_ADMIN_EMAIL.strip().lower()
    if not email or not config.MASTER_ADMIN_PASSWORD:
        logger.warning("No master admin exists and MASTER_ADMIN_EMAIL/PASSWORD are not set")
        return None

    auth_client = auth_client or config.get_auth()
    try:
        account = auth_client.get_user_by_email(email)
        logger.info("Reusing identity account %s for master admin", account.uid)
    except auth_client.UserNotFoundError:
        account = auth_client.create_user(
            email=email,
            password=config.MASTER_ADMIN_PASSWORD,
            display_name=config.MASTER_ADMIN_NAME,
        )

    now = utc_now()
    record = stores.users.create(
        {
            "name": config.MASTER_ADMIN_NAME,
            "email": email,
            "passwordHash": hash_password(config.MASTER_ADMIN_PASSWORD),
            "role": Role.MASTER_ADMIN.value,
            "createdBy": None,
            "createdAt": now,
            "updatedAt": now,
        },
        doc_id=account.uid,
    )
    logger.info("Master admin created: %s", email)
    return record
