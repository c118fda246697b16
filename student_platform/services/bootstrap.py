import logging

from sqlalchemy.orm import Session

from student_platform.auth.passwords import hash_password
from student_platform.core import config
from student_platform.models.user import ROLE_ADMIN, User

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session, password: str | None = None) -> bool:
    """Create the seed administrator unless an admin account already exists.

    Returns True when an account was created. The seed password is a
    deployment secret (``ADMIN_PASSWORD``); startup fails without it when a
    new admin has to be created.
    """
    if db.query(User).filter(User.role == ROLE_ADMIN).first():
        return False

    password = password or config.ADMIN_PASSWORD
    if not password:
        raise RuntimeError("ADMIN_PASSWORD must be set to create the initial admin account.")

    admin = User(
        full_name=config.ADMIN_FULL_NAME,
        phone=config.ADMIN_PHONE,
        university=config.ADMIN_UNIVERSITY,
        major=config.ADMIN_MAJOR,
        batch=config.ADMIN_BATCH,
        hashed_password=hash_password(password),
        role=ROLE_ADMIN,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)

    logger.info("Created default admin account (id=%s, phone=%s)", admin.id, admin.phone)
    return True
