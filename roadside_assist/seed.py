"""Create the schema and seed a default admin plus demo workshops around Bengaluru.

Run with ``python -m roadside_assist.seed``.
"""

import logging
import random

from .database import Base, SessionLocal, engine
from .repository import UserRepository, WorkshopRepository
from .security import hash_password

ADMIN_PHONE = "+911111111111"
ADMIN_PASSWORD = "admin123"
CENTER = (12.9716, 77.5946)
SERVICES_POOL = ["Tire Change", "Battery Jump", "Fuel Delivery", "Towing", "Minor Repairs", "Oil Change"]
NUM_WORKSHOPS = 25


def seed_admin(db):
    users = UserRepository(db)
    if users.get_by_phone(ADMIN_PHONE):
        logging.info("Admin account already exists")
        return None
    admin = users.create(phone=ADMIN_PHONE, name="Admin", role="admin", password_hash=hash_password(ADMIN_PASSWORD))
    logging.info("Admin account created")
    return admin


def seed_workshops(db, count=NUM_WORKSHOPS, rng=random):
    workshops = WorkshopRepository(db)
    created = []
    for i in range(count):
        created.append(workshops.create(
            name=f"Garage {i + 1}",
            address=f"Area {i + 1}, Bengaluru",
            lat=CENTER[0] + rng.uniform(-0.15, 0.15),
            lng=CENTER[1] + rng.uniform(-0.15, 0.15),
            rating=round(3.5 + rng.random() * 1.5, 1),
            reviews=rng.randint(0, 499),
            is_open=rng.random() > 0.2,
            open_time="09:00",
            close_time="21:00",
            services=rng.sample(SERVICES_POOL, rng.randint(3, 5)),
        ))
    logging.info("Seeded %d workshops", len(created))
    return created


def main():
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_admin(db)
        seed_workshops(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
