import logging
import os

from dotenv import load_dotenv
from sqlalchemy import func

from template_market.database import Base, SessionLocal, engine
from template_market.models.taxonomy import IndustryType, TemplateType
from template_market.models.user import Role, User
from template_market.services.auth_service import hash_password

logger = logging.getLogger(__name__)

DEFAULT_INDUSTRY_TYPES = ["Technology", "Health Care", "Fintech"]

DEFAULT_TEMPLATE_TYPES = ["Website", "Mobile App", "Dashboard", "UI Kit"]

# Load environment variables
load_dotenv()


def _seed_names(db, model, names: list[str]) -> None:
    for name in names:
        existing = db.query(model).filter(func.lower(model.name) == name.lower()).first()
        if existing:
            continue
        db.add(model(name=name))
        logger.info("Seeded %s '%s'", model.__tablename__, name)
    db.commit()


def seed_admin(db) -> None:
    email = os.getenv("SEED_ADMIN_EMAIL")
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not email or not password:
        logger.info("SEED_ADMIN_EMAIL/SEED_ADMIN_PASSWORD not set, skipping admin seeding.")
        return

    if db.query(User).filter(User.email == email).first():
        logger.info("Admin user already present, skipping seeding.")
        return

    admin_user = User(
        name=os.getenv("SEED_ADMIN_NAME", "Admin"),
        email=email,
        password=hash_password(password),
        role=Role.ADMIN,
    )
    db.add(admin_user)
    db.commit()
    logger.info("Default admin user seeded")


def run_seed():
    # Ensure all tables exist
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_admin(db)
        _seed_names(db, IndustryType, DEFAULT_INDUSTRY_TYPES)
        _seed_names(db, TemplateType, DEFAULT_TEMPLATE_TYPES)
    except Exception:
        db.rollback()
        logger.exception("Seeding error")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
