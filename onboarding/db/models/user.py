from onboarding.db import db
from datetime import datetime, timezone


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    organisation_id = db.Column(db.Integer, db.ForeignKey('organisation.id'), nullable=False)
    # null for the admins created by scripts/setup_org.py
    invitation_id = db.Column(db.String(36), nullable=True)
    role = db.Column(db.String(32), nullable=False) # admin, teacher or parent
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f'<User {self.email}>'
