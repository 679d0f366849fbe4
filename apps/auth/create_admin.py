from getpass import getpass
from core.database import SessionLocal
from apps.auth.models import UserModel, Role
from apps.auth.services import get_password_hash, ROLE_ADMIN, ROLE_USER


def ensure_roles(db):
    roles_to_create = [
        (ROLE_ADMIN, "Administrator - manages the parts catalog"),
        (ROLE_USER, "Technician - records stock movements"),
    ]

    for role_name, description in roles_to_create:
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            db.add(Role(name=role_name, description=description))
            print(f"Created role: {role_name}")

    db.commit()


def create_admin():
    db = SessionLocal()
    try:
        ensure_roles(db)

        email = input("Admin email: ")
        name = input("Admin name: ")
        password = getpass("Admin password: ")

        admin_role = db.query(Role).filter(Role.name == ROLE_ADMIN).first()
        admin = UserModel(name=name, email=email, hashed_password=get_password_hash(password), role=admin_role)
        db.add(admin)
        db.commit()
        print("Admin account created with admin role.")
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
