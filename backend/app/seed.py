# seed script — creates the admin account and demo psychologists in mongodb
# three psychologists start approved, two wait for admin approval
# run once: python -m app.seed

import asyncio
import logging
import os
from datetime import datetime, timezone

from app.services.db import db
from app.services.auth_service import hash_password

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# seed passwords from env
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@pathify.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD")
DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD")

PSYCHOLOGISTS = [
    {"email": "sarah.johnson@pathify.com", "name": "Dr. Sarah Johnson", "id": "psy001", "title": "Child Psychologist", "approved": True},
    {"email": "michael.chen@pathify.com", "name": "Dr. Michael Chen", "id": "psy002", "title": "Educational Psychologist", "approved": True},
    {"email": "emily.rodriguez@pathify.com", "name": "Dr. Emily Rodriguez", "id": "psy003", "title": "Clinical Child Psychologist", "approved": True},
    {"email": "james.wilson@pathify.com", "name": "Dr. James Wilson", "id": "psy004", "title": "Developmental Psychologist", "approved": False},
    {"email": "lisa.martinez@pathify.com", "name": "Dr. Lisa Martinez", "id": "psy005", "title": "School Psychologist", "approved": False},
]


async def seed():
    """create admin + demo psychologists, skips existing accounts"""
    if not ADMIN_PASSWORD or not DEFAULT_PASSWORD:
        raise SystemExit("Set SEED_ADMIN_PASSWORD and SEED_PASSWORD before seeding")

    await db.connect()
    await db.ensure_indexes()
    now = datetime.now(timezone.utc).isoformat()

    existing_admin = await db.users.find_one({"email": ADMIN_EMAIL})
    if existing_admin:
        logger.info(f"Admin already exists: {ADMIN_EMAIL}")
    else:
        await db.users.insert_one({
            "email": ADMIN_EMAIL,
            "hashed_password": hash_password(ADMIN_PASSWORD),
            "name": "Super Admin",
            "role": "admin",
            "phone": None,
            "approved": True,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Created admin: {ADMIN_EMAIL}")

    hashed_pw = hash_password(DEFAULT_PASSWORD)
    created = 0
    for p in PSYCHOLOGISTS:
        existing = await db.users.find_one({"email": p["email"]})
        if existing:
            logger.info(f"Psychologist already exists: {p['name']} ({p['email']})")
            continue

        result = await db.users.insert_one({
            "email": p["email"],
            "hashed_password": hashed_pw,
            "name": p["name"],
            "role": "psychologist",
            "phone": None,
            "approved": p["approved"],
            "created_at": now,
            "updated_at": now,
        })
        await db.psychologists.insert_one({
            "user_id": str(result.inserted_id),
            "psychologist_id": p["id"],
            "name": p["name"],
            "email": p["email"],
            "title": p["title"],
            "specializations": ["Child Development", "Assessment"],
            "experience": "5+ years",
            "rating": 4.8,
            "completed_assessments": 100 if p["approved"] else 0,
            "description": f"Professional {p['title'].lower()} with extensive experience.",
            "available": True,
            "approved": p["approved"],
            "approved_by": "Super Admin" if p["approved"] else None,
            "approved_at": now if p["approved"] else None,
            "rejected_by": None,
            "rejected_at": None,
            "rejection_reason": None,
            "registered_at": now,
        })
        created += 1
        logger.info(f"Created psychologist: {p['name']} ({p['id']}, approved={p['approved']})")

    logger.info(f"Seed complete! ({created} psychologists created)")
    await db.close()


if __name__ == "__main__":
    asyncio.run(seed())
