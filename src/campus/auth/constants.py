from campus.models import RoleName

JWT_ALGORITHM = "HS256"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

# Role hierarchy: higher levels implicitly satisfy lower threshold checks.
# Seeded into the roles table on startup; a seeded level is never rewritten.
ROLE_HIERARCHY = {
    RoleName.SUPER_ADMIN.value: 100,
    RoleName.ADMIN.value: 80,
    RoleName.MODERATOR.value: 60,
    RoleName.TEACHER.value: 40,
    RoleName.MENTOR.value: 30,
    RoleName.STUDENT.value: 10,
}

ROLE_DISPLAY = {
    RoleName.SUPER_ADMIN.value: ("Super Administrator", "Full system access with all privileges"),
    RoleName.ADMIN.value: ("Administrator", "Administrative access to the system"),
    RoleName.MODERATOR.value: ("Moderator", "Moderation privileges"),
    RoleName.TEACHER.value: ("Teacher", "Teaching staff with course management access"),
    RoleName.MENTOR.value: ("Mentor", "Mentorship and guidance role"),
    RoleName.STUDENT.value: ("Student", "Basic student access"),
}

# Which roles each role may hand out. Level comparison is applied on top of this.
ROLE_GRANT_PERMISSIONS = {
    RoleName.SUPER_ADMIN.value: [role.value for role in RoleName],
    RoleName.ADMIN.value: [
        RoleName.TEACHER.value,
        RoleName.MENTOR.value,
        RoleName.MODERATOR.value,
        RoleName.STUDENT.value,
    ],
}

DEFAULT_REGISTRATION_ROLE = RoleName.STUDENT.value

VERIFICATION_TOKEN_BYTES = 32
