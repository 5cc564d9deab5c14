"""
Logistics Task Management
Identity domain models.

Models:
    - Profile:  person behind an authenticated session
    - UserRole: the single role assigned to a profile
"""

from datetime import datetime, timezone

from logitask.models import db

# ── Constants ────────────────────────────────────────────────────────────────

ROLES = ("admin", "driver", "warehouse", "executive", "operational_lead")
PROFILE_STATUSES = {"active", "pending", "inactive"}

# Department scoping on requirements -> role that fulfils it
DEPARTMENT_SUBMITTER_ROLE = {
    "transport": "driver",
    "warehouse": "warehouse",
}

REVIEWER_ROLES = frozenset({"admin", "warehouse", "executive", "operational_lead"})


class Profile(db.Model):
    """A user known to the identity provider, with contact details."""

    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(100), default="")
    last_name = db.Column(db.String(100), default="")
    phone = db.Column(db.String(50), nullable=True)
    department = db.Column(db.String(100), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(20), default="active")  # active, pending, inactive
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    role_assignment = db.relationship(
        "UserRole", back_populates="profile", uselist=False, cascade="all, delete-orphan",
    )

    @property
    def role(self) -> str | None:
        return self.role_assignment.role if self.role_assignment else None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "department": self.department,
            "avatar_url": self.avatar_url,
            "status": self.status,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Profile #{self.id} {self.email} role={self.role}>"


class UserRole(db.Model):
    """Role assignment; a profile holds exactly one role."""

    __tablename__ = "user_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    role = db.Column(db.String(30), nullable=False, comment="admin | driver | warehouse | executive | operational_lead")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    profile = db.relationship("Profile", back_populates="role_assignment")

    def __repr__(self):
        return f"<UserRole user={self.user_id} {self.role}>"
