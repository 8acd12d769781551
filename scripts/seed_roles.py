from appraisal.core.rbac import ALL_ROLES
from appraisal.db.session import SessionLocal
from appraisal.models.rbac import Role


def main():
    db = SessionLocal()
    try:
        existing = {r.name for r in db.query(Role).all()}
        to_add = [Role(name=name) for name in ALL_ROLES if name not in existing]
        if to_add:
            db.add_all(to_add)
            db.commit()
        print("Roles seeded:", list(ALL_ROLES))
    finally:
        db.close()

if __name__ == "__main__":
    main()
