"""
User Service — profiles, role assignment, seeding.

Sign-in lives with the identity provider; this service keeps the profile
and role rows the backend authorises against.
"""

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, or_

from logitask.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from logitask.models import db
from logitask.models.auth import PROFILE_STATUSES, ROLES, Profile, UserRole

# Accounts created by ``flask seed-demo``
DEMO_USERS = (
    {"email": "admin@bmtops.com", "first_name": "Administrator", "last_name": "",
     "role": "admin", "department": "Administration"},
    {"email": "driver@bmtops.com", "first_name": "John", "last_name": "Smith",
     "role": "driver", "department": "Transport"},
    {"email": "warehouse@bmtops.com", "first_name": "Mike", "last_name": "Brown",
     "role": "warehouse", "department": "Warehouse"},
    {"email": "executive@bmtops.com", "first_name": "Emma", "last_name": "Davis",
     "role": "executive", "department": "Operations"},
    {"email": "opslead@bmtops.com", "first_name": "David", "last_name": "Wilson",
     "role": "operational_lead", "department": "Operations"},
)

_SELF_EDITABLE = {"first_name", "last_name", "phone", "avatar_url"}
_ADMIN_EDITABLE = _SELF_EDITABLE | {"department"}


def _normalise_email(email: str) -> str:
    try:
        return validate_email(email or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)}) from e


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}", details={"role": role})


def _require_admin(user, action: str) -> None:
    if user.role != "admin":
        raise PermissionDenied(user.id, action, "only admins manage users")


# ═══════════════════════════════════════════════════════════════
# Profiles
# ═══════════════════════════════════════════════════════════════
def create_profile(
    email: str,
    role: str,
    first_name: str = "",
    last_name: str = "",
    department: str = None,
    phone: str = None,
    status: str = "active",
) -> Profile:
    """Create a profile with its single role."""
    email = _normalise_email(email)
    _check_role(role)
    if status not in PROFILE_STATUSES:
        raise ValidationError("Invalid status", details={"status": status})
    if Profile.query.filter(func.lower(Profile.email) == email.lower()).first():
        raise ConflictError("Profile", f"A user with email {email} already exists")

    profile = Profile(
        email=email,
        first_name=first_name or "",
        last_name=last_name or "",
        department=department,
        phone=phone,
        status=status,
    )
    profile.role_assignment = UserRole(role=role)
    db.session.add(profile)
    db.session.commit()
    return profile


def get_profile(profile_id: int) -> Profile:
    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise NotFoundError("Profile", profile_id)
    return profile


def list_profiles(role: str = None, status: str = None, search: str = None) -> list[Profile]:
    query = Profile.query
    if role:
        query = query.join(UserRole, UserRole.user_id == Profile.id).filter(UserRole.role == role)
    if status:
        query = query.filter(Profile.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Profile.email.ilike(pattern),
            Profile.first_name.ilike(pattern),
            Profile.last_name.ilike(pattern),
        ))
    return query.order_by(Profile.first_name, Profile.last_name, Profile.id).all()


def update_profile(profile_id: int, data: dict, user) -> Profile:
    """Users edit their own contact details; admins may edit anyone's."""
    profile = get_profile(profile_id)
    if user.id == profile.id and user.role != "admin":
        allowed = _SELF_EDITABLE
    else:
        _require_admin(user, "update_profile")
        allowed = _ADMIN_EDITABLE
    for key, val in data.items():
        if key in allowed:
            setattr(profile, key, val.strip() if isinstance(val, str) else val)
    db.session.commit()
    return profile


def set_role(profile_id: int, role: str, user) -> Profile:
    """Replace a profile's role. Admins cannot change their own role."""
    _require_admin(user, "set_role")
    _check_role(role)
    profile = get_profile(profile_id)
    if profile.id == user.id:
        raise ConflictError("UserRole", "You cannot change your own role")
    if profile.role_assignment:
        profile.role_assignment.role = role
    else:
        profile.role_assignment = UserRole(role=role)
    db.session.commit()
    return profile


def set_status(profile_id: int, status: str, user) -> Profile:
    _require_admin(user, "set_status")
    if status not in PROFILE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(sorted(PROFILE_STATUSES))}", details={"status": status},
        )
    profile = get_profile(profile_id)
    if profile.id == user.id and status != "active":
        raise ConflictError("Profile", "You cannot deactivate your own account")
    profile.status = status
    db.session.commit()
    return profile


# ═══════════════════════════════════════════════════════════════
# Seeding
# ═══════════════════════════════════════════════════════════════
def seed_admin(email: str, first_name: str = "Administrator", last_name: str = "") -> tuple[Profile, bool]:
    """Create the first admin, or promote an existing profile. Returns (profile, created)."""
    email = _normalise_email(email)
    existing = Profile.query.filter(func.lower(Profile.email) == email.lower()).first()
    if existing:
        if existing.role_assignment:
            existing.role_assignment.role = "admin"
        else:
            existing.role_assignment = UserRole(role="admin")
        existing.status = "active"
        db.session.commit()
        return existing, False
    return create_profile(email, "admin", first_name, last_name, department="Administration"), True


def seed_demo_users() -> list[Profile]:
    """Create the demo accounts that do not exist yet."""
    created = []
    for spec in DEMO_USERS:
        if Profile.query.filter(func.lower(Profile.email) == spec["email"].lower()).first():
            continue
        created.append(create_profile(**spec))
    return created
