from models import db
from models.user import Role
from models.lab import Lab

DEFAULT_ROLES = ["STUDENT", "TO", "INSTRUCTOR", "LECTURER", "ADMIN", "SUPER_ADMIN"]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_default_lab(name: str) -> int:
    lab = Lab.query.filter_by(name=name).first()
    if not lab:
        lab = Lab(name=name)
        db.session.add(lab)
        db.session.commit()
    return lab.id
