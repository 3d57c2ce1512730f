import uuid
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.user import User, UserRole


def seed_users(db: Session):
    # Only seed if no users exist
    if db.query(User).count() > 0:
        return

    users = [
        User(
            id=str(uuid.uuid4()),
            first_name="Admin",
            phone="+15550000001",
            role=UserRole.ADMIN,
            password_hash=hash_password("admin123"),
            is_active=True,
        ),
        User(
            id=str(uuid.uuid4()),
            first_name="Front",
            last_name="Desk",
            phone="+15550000002",
            role=UserRole.RECEPTIONIST,
            password_hash=hash_password("desk1234"),
            is_active=True,
        ),
        User(
            id=str(uuid.uuid4()),
            first_name="Driver",
            last_name="One",
            phone="+15550000003",
            role=UserRole.DRIVER,
            password_hash=hash_password("driver123"),
            is_active=True,
        ),
        User(
            id=str(uuid.uuid4()),
            first_name="Casey",
            last_name="Customer",
            phone="+15550000004",
            role=UserRole.CUSTOMER,
            password_hash=hash_password("customer123"),
            is_active=True,
        ),
    ]

    db.add_all(users)
    db.commit()
